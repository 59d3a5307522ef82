"""RuleDesk entrypoint -- wires all components together and starts the server.

Usage:
    python main.py
    python main.py --config /path/to/config.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass

from aiohttp import web

from core.bus import AsyncIOBus
from core.config import AppConfig, load_config
from core.data.store import Store
from core.duration import parse_duration
from core.registry import PluginRegistry
from engine.briefing import BriefingService
from engine.dashboard import Dashboard
from engine.gateway import MarketGateway
from engine.state import StateRepository
from scheduler.runner import RefreshLoop
from server import create_app


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))
    # Quiet down noisy libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="RuleDesk rule-based investment dashboard")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config.yaml (default: ~/.ruledesk/config.yaml)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: ~/.ruledesk/.env)",
    )
    return parser.parse_args()


def load_plugins(config: AppConfig, registry: PluginRegistry) -> None:
    """Instantiate and register the providers enabled in config."""
    logger = logging.getLogger("ruledesk.plugins")

    # 1. LLM providers -- configured when an API key is present and resolved
    for provider_name, provider_config in config.ai.providers.items():
        if not provider_config.api_key or provider_config.api_key.startswith("${"):
            continue
        options = {
            "api_key": provider_config.api_key,
            "max_tokens": provider_config.max_tokens,
            "temperature": provider_config.temperature,
        }
        if provider_config.model:
            options["model"] = provider_config.model

        try:
            if provider_name == "gemini":
                from plugins.ai_providers.gemini import GeminiProvider
                if provider_config.base_url:
                    options["base_url"] = provider_config.base_url
                instance = GeminiProvider(**options)
            elif provider_name == "openai":
                from plugins.ai_providers.openai import OpenAIProvider
                if provider_config.base_url:
                    options["base_url"] = provider_config.base_url
                instance = OpenAIProvider(**options)
            elif provider_name == "anthropic":
                from plugins.ai_providers.anthropic import AnthropicProvider
                instance = AnthropicProvider(**options)
            else:
                logger.warning("Unknown AI provider '%s' in config, skipping", provider_name)
                continue
            registry.register("llm", instance)
        except (TypeError, ValueError) as e:
            logger.error("Failed to load AI provider %s: %s", provider_name, e)

    # 2. Market data providers
    timeout = parse_duration(config.market_data.request_timeout).total_seconds()
    for provider_name, provider_config in config.market_data.providers.items():
        if not provider_config.enabled:
            continue
        if provider_name == "yahoo_finance":
            from plugins.market_data.yahoo_finance import YahooFinanceProvider
            history_range = provider_config.extra.get("history_range", config.market_data.history_range)
            registry.register("market_data", YahooFinanceProvider(
                history_range=history_range,
                timeout=timeout,
            ))
        else:
            logger.warning("Unknown market data provider '%s' in config, skipping", provider_name)


@dataclass
class Components:
    """Everything a running dashboard needs, built from one AppConfig."""

    config: AppConfig
    store: Store
    bus: AsyncIOBus
    registry: PluginRegistry
    state: StateRepository
    gateway: MarketGateway
    briefing: BriefingService
    dashboard: Dashboard

    async def close(self) -> None:
        """Close every provider's HTTP client, then the store."""
        logger = logging.getLogger("ruledesk")
        for protocol_key in ("llm", "market_data"):
            for provider in self.registry.get_all(protocol_key):
                if not hasattr(provider, "close"):
                    continue
                try:
                    await provider.close()
                except Exception as e:
                    logger.error("Error closing %s provider %s: %s", protocol_key, provider.name, e)
        self.store.close()


def build_components(config: AppConfig, load_providers: bool = True) -> Components:
    """Wire store, bus, registry, gateway, briefing service and dashboard."""
    home = config.home_path
    store = Store(home)
    bus = AsyncIOBus(events_dir=home / "events" if config.logging.audit_events else None)
    registry = PluginRegistry()
    if load_providers:
        load_plugins(config, registry)

    state = StateRepository(store)
    gateway = MarketGateway(
        provider=registry.first("market_data"),
        state=state,
        market_config=config.market_data,
        rules_config=config.rules,
        bus=bus,
    )
    briefing = BriefingService(registry, config.ai, bus=bus)
    dashboard = Dashboard(
        gateway=gateway,
        state=state,
        briefing=briefing,
        bus=bus,
        rules_config=config.rules,
        include_briefing=config.refresh.include_briefing,
    )
    return Components(
        config=config,
        store=store,
        bus=bus,
        registry=registry,
        state=state,
        gateway=gateway,
        briefing=briefing,
        dashboard=dashboard,
    )


async def run(config_path: str | None = None, env_path: str | None = None) -> None:
    """Main async entry point."""
    logger = logging.getLogger("ruledesk")

    config = load_config(config_path=config_path, env_path=env_path)
    setup_logging(config.logging.level)

    components = build_components(config)
    logger.info("Plugin registry: %s", components.registry.summary())

    app = create_app(
        config=config,
        bus=components.bus,
        registry=components.registry,
        gateway=components.gateway,
        briefing=components.briefing,
        dashboard=components.dashboard,
    )

    refresh: RefreshLoop | None = None
    if config.refresh.enabled:
        interval = parse_duration(config.refresh.interval).total_seconds()
        refresh = RefreshLoop(components.dashboard, interval=interval)
        await refresh.start()

    # Start server
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.server.host, config.server.port)
    await site.start()

    logger.info(
        "RuleDesk running at http://%s:%d",
        config.server.host,
        config.server.port,
    )
    logger.info("State directory: %s", config.home_path)

    # Run until interrupted
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        logger.info("Shutting down...")
        if refresh is not None:
            await refresh.stop()
        await runner.cleanup()
        await components.close()
        logger.info("Shutdown complete")


def main() -> None:
    args = parse_args()
    setup_logging("INFO")
    try:
        asyncio.run(run(config_path=args.config, env_path=args.env))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
