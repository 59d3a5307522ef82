"""Plugin registry -- stores and retrieves protocol implementations.

At startup, main.py instantiates plugins based on config.yaml and registers
them here. The gateway and briefing service look providers up by protocol type.
"""

from __future__ import annotations

import logging
from typing import Any

from core.protocols import LLMProvider, MarketDataProvider

logger = logging.getLogger(__name__)

PROTOCOL_TYPES = {
    "market_data": MarketDataProvider,
    "llm": LLMProvider,
}


class PluginRegistry:
    """Central registry for all protocol implementations.

    Usage:
        registry = PluginRegistry()
        registry.register("market_data", yahoo_finance_provider)
        registry.register("llm", gemini_provider)

        gemini = registry.get("llm", "gemini")
    """

    def __init__(self) -> None:
        self._plugins: dict[str, dict[str, Any]] = {key: {} for key in PROTOCOL_TYPES}

    def register(self, protocol_key: str, instance: Any) -> None:
        """Register a plugin instance under a protocol type.

        The instance must have a `name` property and satisfy the protocol.
        """
        if protocol_key not in PROTOCOL_TYPES:
            raise ValueError(
                f"Unknown protocol key '{protocol_key}'. "
                f"Must be one of: {list(PROTOCOL_TYPES.keys())}"
            )
        if not isinstance(instance, PROTOCOL_TYPES[protocol_key]):
            raise TypeError(
                f"{type(instance).__name__} does not implement the {protocol_key} protocol"
            )

        name = instance.name
        if name in self._plugins[protocol_key]:
            logger.warning("Overwriting existing %s plugin '%s'", protocol_key, name)

        self._plugins[protocol_key][name] = instance
        logger.info("Registered %s plugin: %s", protocol_key, name)

    def get(self, protocol_key: str, name: str) -> Any:
        """Get a specific plugin by protocol type and name.

        Raises KeyError if not found.
        """
        if protocol_key not in self._plugins:
            raise KeyError(f"Unknown protocol key: {protocol_key}")
        if name not in self._plugins[protocol_key]:
            available = list(self._plugins[protocol_key].keys())
            raise KeyError(
                f"No {protocol_key} plugin named '{name}'. "
                f"Available: {available}"
            )
        return self._plugins[protocol_key][name]

    def first(self, protocol_key: str, preferred: str | None = None) -> Any | None:
        """The preferred plugin if registered, else the first one, else None."""
        if preferred and self.has(protocol_key, preferred):
            return self._plugins[protocol_key][preferred]
        plugins = self.get_all(protocol_key)
        return plugins[0] if plugins else None

    def get_all(self, protocol_key: str) -> list[Any]:
        """Get all plugins registered for a protocol type."""
        if protocol_key not in self._plugins:
            raise KeyError(f"Unknown protocol key: {protocol_key}")
        return list(self._plugins[protocol_key].values())

    def has(self, protocol_key: str, name: str) -> bool:
        """Check if a plugin is registered."""
        return (
            protocol_key in self._plugins
            and name in self._plugins[protocol_key]
        )

    def summary(self) -> dict[str, list[str]]:
        """Return a summary of all registered plugins."""
        return {
            key: list(plugins.keys())
            for key, plugins in self._plugins.items()
            if plugins
        }
