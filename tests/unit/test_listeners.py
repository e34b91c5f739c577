"""Tests for status listeners."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import pytest

from statuswatch.listeners import LoggingStatusListener, StatusListener
from statuswatch.normalizer import StatusSnapshot
from statuswatch.uptime import UptimeBucket
from tests.mocks import RecordingListener

HISTORY = [
    UptimeBucket(datetime(2024, 1, 15, 9, tzinfo=UTC), 100),
    UptimeBucket(datetime(2024, 1, 15, 10, tzinfo=UTC), 0),
]


class TestStatusListenerProtocol:
    """Tests for the StatusListener protocol."""

    def test_implementations_satisfy_protocol(self) -> None:
        assert isinstance(LoggingStatusListener(), StatusListener)
        assert isinstance(RecordingListener(), StatusListener)

    def test_object_without_callbacks_does_not(self) -> None:
        assert not isinstance(object(), StatusListener)


class TestLoggingStatusListener:
    """Tests for LoggingStatusListener."""

    def test_online(self, caplog: pytest.LogCaptureFixture) -> None:
        snapshot = StatusSnapshot(
            online=True,
            players_online=2,
            max_players=20,
            version="1.20.4",
            player_names=("Alice", "Bob"),
        )

        with caplog.at_level(logging.INFO, logger="statuswatch.listeners"):
            LoggingStatusListener().on_status(snapshot, HISTORY)

        assert "Server online: 2/20 players (Alice, Bob), version 1.20.4" in caplog.text
        assert "Uptime over last 2 hour(s): 50.0%" in caplog.text

    def test_offline(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="statuswatch.listeners"):
            LoggingStatusListener().on_status(StatusSnapshot.offline(), [])

        assert "Server offline" in caplog.text
        assert "Uptime" not in caplog.text

    def test_degraded_snapshot_left_to_on_degraded(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        listener = LoggingStatusListener()

        with caplog.at_level(logging.INFO, logger="statuswatch.listeners"):
            listener.on_status(StatusSnapshot.offline(degraded=True), HISTORY)
            listener.on_degraded("no routes")

        assert [r.levelno for r in caplog.records] == [logging.WARNING]
        assert "Status unavailable: no routes" in caplog.text
