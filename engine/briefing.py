"""Briefing service -- a three-line narrative of the current advice.

The LLM call is optional and bounded by a timeout. Whenever it is missing,
slow, or returns nothing usable, a deterministic template is used instead.
Both paths band the drawdown with the same tables and locator the advice
composer uses, so they never disagree about the ratio.
"""

from __future__ import annotations

import asyncio
import logging

from core.config import AIConfig
from core.duration import parse_duration
from core.models.events import Event, EventTypes
from core.models.overview import Briefing, BriefingRequest
from core.models.rules import MarketStatus, RateMode
from core.protocols import EventBus, LLMError, LLMProvider
from core.registry import PluginRegistry
from rules.advice import applicable_table
from rules.bands import entry_threshold
from rules.zones import locate_band_for_drawdown

logger = logging.getLogger(__name__)

# Tables are only consulted for their percentages here.
_NOMINAL_REFERENCE = 100.0

SYSTEM_PROMPT = """\
You are an investment assistant that has memorized a written rulebook of
mechanical buy and sell bands. Leave emotion out of it and state only what the
rulebook prescribes for the situation you are given."""

TABLE_NAMES = {
    ("normal", "zero-rate"): "Sell-down table (sell 10% every 2.5% drop)",
    ("normal", "rising-rate"): "Sell-down table (sell 10% every 2.5% drop)",
    ("crisis", "zero-rate"): "Buy-up table, zero-rate (buy 10% every 2.5% drop)",
    ("crisis", "rising-rate"): "Buy-up table, rising-rate (buy 10% every 5% drop after -5%)",
}


def build_prompt(request: BriefingRequest) -> list[dict]:
    """Chat messages for the narrative call."""
    index = request.index
    top = request.top_security
    crisis = request.crisis_state
    direction = "up" if index.change_percent >= 0 else "down"

    lines = [
        f"The index ({index.name}) is {direction} {abs(index.change_percent):.2f}% from the previous close.",
    ]
    if index.crash_flag:
        lines.append("The -3% rule has triggered, so the market is in a panic period.")
    else:
        lines.append(f"The -3% rule has not triggered today; market status is {request.market_status}.")
    lines.append(
        f"The largest company ({top.name}) is {top.drawdown_percent:.1f}% below its all-time-high."
    )
    lines.append(f"The interest-rate regime is {request.rate_mode}.")
    if crisis.is_active and crisis.remaining_days > 0:
        lines.append(f"{crisis.remaining_days} days remain in the panic waiting period.")
        lines.append(f"The -3% rule has fired {crisis.drop_count} times in this panic period.")

    table = TABLE_NAMES[(request.market_status, request.rate_mode)]
    user = (
        "\n".join(lines)
        + f"\n\nAccording to the rulebook's '{table}', what should the user do now?"
        + "\nAnswer in exactly 3 numbered lines:\n"
        + "1. [one-line summary of the situation]\n"
        + "2. [the action to take today]\n"
        + "3. [a caution or the next thing to watch]\n"
        + "Include concrete ratios or numbers."
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def fallback_briefing(status: MarketStatus, drawdown: float, rate_mode: RateMode) -> str:
    """Deterministic three-line briefing keyed on status, drawdown and rate mode."""
    table = applicable_table(_NOMINAL_REFERENCE, status, rate_mode)
    threshold = entry_threshold(table)
    band = locate_band_for_drawdown(drawdown, table, threshold)

    if status == "normal":
        if band is None:
            return (
                "1. Normal market; the largest company is trading near its all-time-high.\n"
                "2. No trade today. Keep the current positions.\n"
                f"3. Prepare the next step if the index drops 3% or the drawdown reaches {threshold:.1f}%."
            )
        return (
            f"1. Normal market; the largest company is {drawdown:.1f}% below its all-time-high.\n"
            f"2. Following the sell-down table, rebalance so cash is {band.ratio}% of the portfolio.\n"
            "3. Prepare the next band if it falls further, and buy back after a two-band rebound."
        )

    if band is None:
        return (
            "1. Panic period: the index has triggered the -3% rule.\n"
            f"2. The {threshold:.1f}% buy-up threshold has not been reached. Wait.\n"
            "3. Set buy orders at the first band and keep watching the drawdown."
        )
    return (
        "1. Panic period: the index has triggered the -3% rule.\n"
        f"2. Following the buy-up table, raise stocks to {band.ratio}% of the portfolio.\n"
        "3. Place intraday buy orders and prepare to rebalance after a two-band V-shaped rebound."
    )


class BriefingService:
    """Generates briefings through the preferred LLM provider, with fallback."""

    def __init__(
        self,
        registry: PluginRegistry,
        config: AIConfig | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or AIConfig()
        self._timeout = parse_duration(self._config.timeout).total_seconds()
        self._bus = bus

    @property
    def provider(self) -> LLMProvider | None:
        return self._registry.first("llm", self._config.default_provider)

    async def generate(self, request: BriefingRequest) -> Briefing:
        """Return an AI briefing, or the deterministic one if the call fails."""
        provider = self.provider
        if provider is None:
            return await self._fallback(request, "no LLM provider configured")

        try:
            text = await asyncio.wait_for(
                provider.complete(build_prompt(request)),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            return await self._fallback(request, f"{provider.name} timed out after {self._timeout:.0f}s")
        except LLMError as exc:
            return await self._fallback(request, str(exc))

        return Briefing(text=text, source="ai", provider=provider.name)

    async def _fallback(self, request: BriefingRequest, reason: str) -> Briefing:
        logger.warning("Using fallback briefing: %s", reason)
        if self._bus is not None:
            await self._bus.publish(Event(
                type=EventTypes.BRIEFING_FALLBACK,
                source="briefing",
                payload={"reason": reason},
            ))
        text = fallback_briefing(
            request.market_status,
            request.top_security.drawdown_percent,
            request.rate_mode,
        )
        return Briefing(text=text, source="fallback")
