import itertools

import pytest

from backend import RoomRegistry
from helpers import FakeClock, FakeWebSocket
from rate_limiter import RateLimiter
from session import Session
from signaling import SignalingRouter


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return RoomRegistry(clock=clock)


@pytest.fixture
def router(registry, clock):
    return SignalingRouter(registry, rate_limiter=RateLimiter(clock=clock))


@pytest.fixture
def make_session():
    counter = itertools.count(1)

    def _make():
        return Session(FakeWebSocket(), connection_id=f"conn-{next(counter)}")

    return _make
