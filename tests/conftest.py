"""Shared fixtures: fake clocks and a counting httpx mock transport."""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


class FakeClock:
    """Monotonic seconds clock for ForecastCache."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


class FakeUtcClock:
    """Aware UTC datetime clock for TideService."""

    def __init__(self, start: datetime):
        self.now = start

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def __call__(self) -> datetime:
        return self.now


class RecordingTransport:
    """Wraps a handler and records every request it sees."""

    open_clients: List[httpx.AsyncClient] = []

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        RecordingTransport.open_clients.append(client)
        return client


def close_open_clients() -> int:
    """Close every client handed out by RecordingTransport.client()."""
    closed = 0
    loop = asyncio.new_event_loop()
    try:
        while RecordingTransport.open_clients:
            client = RecordingTransport.open_clients.pop()
            if not client.is_closed:
                loop.run_until_complete(client.aclose())
                closed += 1
    finally:
        loop.close()
    return closed


@pytest.fixture(autouse=True)
def close_clients():
    yield
    close_open_clients()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def utc_clock():
    return FakeUtcClock(datetime(2026, 10, 16, 6, 0, tzinfo=timezone.utc))
