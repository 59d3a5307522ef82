from __future__ import annotations

from pathlib import Path

import pytest

from core.bus import AsyncIOBus
from core.data.store import Store
from core.protocols import LLMError
from engine.state import StateRepository
from tests.fakes import EventRecorder, FakeLLM, FakeMarketData


@pytest.fixture
def store(tmp_path: Path):
    s = Store(tmp_path)
    yield s
    s.close()


@pytest.fixture
def state(store: Store) -> StateRepository:
    return StateRepository(store)


@pytest.fixture
def bus() -> AsyncIOBus:
    return AsyncIOBus()


@pytest.fixture
def recorder(bus: AsyncIOBus) -> EventRecorder:
    rec = EventRecorder()
    bus.subscribe("*", rec)
    return rec


@pytest.fixture
def market() -> FakeMarketData:
    return FakeMarketData()


@pytest.fixture
def failing_llm() -> FakeLLM:
    return FakeLLM(error=LLMError("fake_llm", "API returned 500"))
