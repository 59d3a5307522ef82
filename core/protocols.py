"""Core protocols -- the extension points plugins implement.

The core imports these protocols. Plugins implement them.
The core NEVER imports concrete implementations.

All protocols use Python's structural subtyping (typing.Protocol):
if your class has the right methods, it implements the protocol.
No inheritance required.
"""

from __future__ import annotations

from typing import Any, Callable, Coroutine, Protocol, runtime_checkable

from core.models.events import Event
from core.models.market import Quote


# ---------------------------------------------------------------------------
# 1. EventBus -- inter-component notifications
# ---------------------------------------------------------------------------

@runtime_checkable
class EventBus(Protocol):
    """Publish/subscribe event bus.

    Default implementation: AsyncIOBus (in-process pub/sub with JSONL audit).
    """

    async def publish(self, event: Event) -> None:
        """Publish an event to all subscribers of its type."""
        ...

    def subscribe(self, event_type: str, callback: Callable[[Event], Coroutine[Any, Any, None]]) -> None:
        """Register a callback for events of the given type."""
        ...

    def unsubscribe(self, event_type: str, callback: Callable[[Event], Coroutine[Any, Any, None]]) -> None:
        """Remove a previously registered callback."""
        ...


# ---------------------------------------------------------------------------
# 2. MarketDataProvider -- current quotes for a symbol
# ---------------------------------------------------------------------------

@runtime_checkable
class MarketDataProvider(Protocol):
    """Fetches a current quote plus the lookback high for one symbol.

    Implementations raise on any upstream failure; the gateway decides
    what to substitute.
    """

    @property
    def name(self) -> str:
        """Unique provider name, e.g. 'yahoo_finance'."""
        ...

    async def fetch_quote(self, symbol: str) -> Quote:
        """Return the latest quote for `symbol`.

        Raises MarketDataError when no usable quote can be produced.
        """
        ...


class MarketDataError(Exception):
    """Upstream quote could not be fetched or parsed."""

    def __init__(self, symbol: str, message: str):
        super().__init__(f"{symbol}: {message}")
        self.symbol = symbol


# ---------------------------------------------------------------------------
# 3. LLMProvider -- text generation
# ---------------------------------------------------------------------------

@runtime_checkable
class LLMProvider(Protocol):
    """Abstracts language model API calls.

    Implementations call LLM APIs via httpx (no SDK required).
    """

    @property
    def name(self) -> str:
        """Provider name, e.g. 'gemini', 'openai', 'anthropic'."""
        ...

    async def complete(self, messages: list[dict], **kwargs: Any) -> str:
        """Send messages to the model and return the text response.

        Raises LLMError on transport failures or malformed responses.
        """
        ...


class LLMError(Exception):
    """Text generation failed or returned nothing usable."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
