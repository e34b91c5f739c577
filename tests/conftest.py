"""Shared pytest fixtures for StatusWatch tests.

HTTP traffic is served by ``tests.mocks.RouteStub`` through
``httpx.MockTransport``; nothing in the unit suite touches the network.

Typical scheduler setup::

    async def test_example(route_stub, poll_state, clock):
        route_stub.behaviours[0] = ok(ONLINE_DOCUMENT)
        fetcher = FailoverFetcher(make_registry(DIRECT), poll_state, client=route_stub.client())
        scheduler = PollScheduler(fetcher, poll_state, clock=clock)
"""

from __future__ import annotations

import logging

import pytest

from statuswatch.state import PollState
from statuswatch.store import InMemoryUptimeStore
from statuswatch.uptime import UptimeRecorder
from tests.mocks import FakeClock, RecordingListener, RouteStub


@pytest.fixture
def route_stub() -> RouteStub:
    """Route stub with no behaviours; every route answers 503 until configured."""
    return RouteStub()


@pytest.fixture
def uptime_store() -> InMemoryUptimeStore:
    return InMemoryUptimeStore()


@pytest.fixture
def poll_state(uptime_store: InMemoryUptimeStore) -> PollState:
    return PollState(recorder=UptimeRecorder(uptime_store))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture(autouse=True)
def _propagate_statuswatch_logs() -> None:
    """Keep statuswatch logs visible to caplog after setup_logging() tests."""
    package_logger = logging.getLogger("statuswatch")
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
