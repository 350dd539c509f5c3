"""Shared pytest fixtures."""

import pytest
from helpers import FakeClock, FakeSleep

from llm_grid.host.memory import MemoryHost
from llm_grid.session.kv_store import MemoryStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> FakeSleep:
    return FakeSleep(clock)


@pytest.fixture
def host() -> MemoryHost:
    return MemoryHost()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()
