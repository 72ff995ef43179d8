import random
from datetime import datetime, timedelta

import pytest

from src.planner.intents import IntentParser
from src.planner.storage import InMemoryStorage
from src.planner.store import RecordStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 5, 1, 9, 30, 0))


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def store(storage, clock):
    s = RecordStore(storage, clock=clock)
    s.load()
    return s


@pytest.fixture
def parser(clock):
    return IntentParser(rng=random.Random(42), clock=clock)
