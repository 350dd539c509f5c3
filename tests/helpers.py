"""Test helpers: fake clock/sleep and orchestrator wiring."""

from __future__ import annotations

import asyncio

from llm_grid.config.schema import Config
from llm_grid.host.memory import MemoryHost
from llm_grid.orchestrator import Orchestrator
from llm_grid.session.kv_store import MemoryStore


class FakeClock:
    """Seconds since epoch, advanced only by ``FakeSleep`` or by hand."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested delays, advances the clock and yields once."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        if self.clock is not None:
            self.clock.advance(delay)
        await asyncio.sleep(0)


def make_orchestrator(
    host: MemoryHost | None = None,
    store: MemoryStore | None = None,
    clock: FakeClock | None = None,
) -> tuple[Orchestrator, MemoryHost, MemoryStore, FakeClock, FakeSleep]:
    host = host or MemoryHost()
    store = store or MemoryStore()
    clock = clock or FakeClock()
    sleep = FakeSleep(clock)
    orchestrator = Orchestrator(host, store, Config(), sleep=sleep, clock=clock)
    return orchestrator, host, store, clock, sleep
