import asyncio

import pytest

from scheduler.runner import RefreshLoop


class StubDashboard:
    def __init__(self, fail_first: int = 0) -> None:
        self.calls = 0
        self.fail_first = fail_first

    async def evaluate(self):
        self.calls += 1
        if self.calls <= self.fail_first:
            raise RuntimeError("upstream exploded")


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        RefreshLoop(StubDashboard(), interval=0)


async def test_run_once_counts_successes():
    loop = RefreshLoop(StubDashboard(fail_first=1), interval=60)

    assert await loop.run_once() is False
    assert await loop.run_once() is True
    assert loop.cycles == 1


async def test_loop_survives_failures():
    dashboard = StubDashboard(fail_first=2)
    loop = RefreshLoop(dashboard, interval=0.01)

    await loop.start()
    assert loop.running
    for _ in range(200):
        if loop.cycles >= 2:
            break
        await asyncio.sleep(0.01)
    await loop.stop()

    assert not loop.running
    assert dashboard.calls >= 4
    assert loop.cycles >= 2
