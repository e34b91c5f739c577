"""Tests for the uptime recorder."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta, timezone

import pytest

from statuswatch.errors import PersistenceError
from statuswatch.store import InMemoryUptimeStore, UptimeStore
from statuswatch.uptime import (
    MAX_BUCKETS,
    UptimeBucket,
    UptimeRecorder,
    format_bucket_key,
    parse_bucket_key,
    truncate_to_hour,
)

NOW = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


class BrokenStore(UptimeStore):
    """Store whose every operation fails."""

    def load(self) -> dict[str, object]:
        raise PersistenceError("disk on fire")

    def save(self, data: dict[str, int]) -> None:
        raise PersistenceError("disk on fire")


class TestBucketKeys:
    """Tests for bucket key helpers."""

    def test_truncate_to_hour(self) -> None:
        assert truncate_to_hour(datetime(2024, 1, 15, 10, 59, 59, 999, tzinfo=UTC)) == datetime(
            2024, 1, 15, 10, tzinfo=UTC
        )

    def test_truncate_converts_to_utc(self) -> None:
        local = datetime(2024, 1, 15, 12, 45, tzinfo=timezone(timedelta(hours=2)))

        assert truncate_to_hour(local) == datetime(2024, 1, 15, 10, tzinfo=UTC)

    def test_format_key(self) -> None:
        assert format_bucket_key(NOW) == "2024-01-15T10:00:00+00:00"

    @pytest.mark.parametrize(
        "key",
        ["2024-01-15T10:00:00+00:00", "2024-01-15T10:00", "2024-01-15T10:42:10Z"],
    )
    def test_parse_key_forms(self, key: str) -> None:
        assert parse_bucket_key(key) == datetime(2024, 1, 15, 10, tzinfo=UTC)

    def test_parse_invalid_key(self) -> None:
        with pytest.raises(ValueError):
            parse_bucket_key("yesterday")


class TestRecord:
    """Tests for UptimeRecorder.record()."""

    def test_online_and_offline_samples(self) -> None:
        recorder = UptimeRecorder()

        online = recorder.record(NOW, True)
        offline = recorder.record(NOW + timedelta(hours=1), False)

        assert online == UptimeBucket(datetime(2024, 1, 15, 10, tzinfo=UTC), 100)
        assert offline == UptimeBucket(datetime(2024, 1, 15, 11, tzinfo=UTC), 0)
        assert recorder.history() == [online, offline]

    def test_same_hour_last_write_wins(self) -> None:
        recorder = UptimeRecorder()

        recorder.record(datetime(2024, 1, 15, 10, 5, tzinfo=UTC), True)
        recorder.record(datetime(2024, 1, 15, 10, 55, tzinfo=UTC), False)

        assert len(recorder) == 1
        assert recorder.history() == [UptimeBucket(datetime(2024, 1, 15, 10, tzinfo=UTC), 0)]

    def test_history_never_exceeds_24_buckets(self) -> None:
        """Hourly polls for three days keep only the most recent day."""
        recorder = UptimeRecorder()
        start = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)

        for hour in range(72):
            recorder.record(start + timedelta(hours=hour), hour % 2 == 0)
            assert len(recorder.history()) <= MAX_BUCKETS

        history = recorder.history()
        assert len(history) == MAX_BUCKETS
        assert history[-1].timestamp == start + timedelta(hours=71)
        assert history[0].timestamp == start + timedelta(hours=48)

    def test_exactly_on_the_hour_keeps_24(self) -> None:
        recorder = UptimeRecorder()
        start = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)

        for hour in range(25):
            recorder.record(start + timedelta(hours=hour), True)

        assert len(recorder) == MAX_BUCKETS
        assert recorder.history()[0].timestamp == start + timedelta(hours=1)

    def test_prunes_buckets_older_than_a_day(self) -> None:
        recorder = UptimeRecorder()
        recorder.record(NOW - timedelta(hours=30), True)
        recorder.record(NOW - timedelta(hours=2), True)

        recorder.record(NOW, False)

        assert [b.timestamp for b in recorder.history()] == [
            truncate_to_hour(NOW - timedelta(hours=2)),
            truncate_to_hour(NOW),
        ]

    def test_history_is_sorted_oldest_first(self) -> None:
        recorder = UptimeRecorder()
        recorder.record(NOW, True)
        recorder.record(NOW - timedelta(hours=3), False)

        timestamps = [b.timestamp for b in recorder.history()]

        assert timestamps == sorted(timestamps)

    def test_uptime_percentage(self) -> None:
        recorder = UptimeRecorder()
        assert recorder.uptime_percentage() == 0.0

        recorder.record(NOW, True)
        recorder.record(NOW + timedelta(hours=1), True)
        recorder.record(NOW + timedelta(hours=2), True)
        recorder.record(NOW + timedelta(hours=3), False)

        assert recorder.uptime_percentage() == 75.0


class TestPersistence:
    """Tests for loading and saving through a store."""

    def test_each_record_is_saved(self) -> None:
        store = InMemoryUptimeStore()
        recorder = UptimeRecorder(store)

        recorder.record(NOW, True)
        recorder.record(NOW + timedelta(hours=1), False)

        assert store.save_count == 2
        assert store.data == {
            "2024-01-15T10:00:00+00:00": 100,
            "2024-01-15T11:00:00+00:00": 0,
        }

    def test_loads_existing_history(self) -> None:
        store = InMemoryUptimeStore(
            {"2024-01-15T08:00:00+00:00": 100, "2024-01-15T09:00": 0}
        )

        recorder = UptimeRecorder(store)

        assert recorder.history() == [
            UptimeBucket(datetime(2024, 1, 15, 8, tzinfo=UTC), 100),
            UptimeBucket(datetime(2024, 1, 15, 9, tzinfo=UTC), 0),
        ]

    def test_drops_invalid_entries_on_load(self, caplog: pytest.LogCaptureFixture) -> None:
        store = InMemoryUptimeStore(
            {
                "2024-01-15T08:00:00+00:00": 100,
                "not-a-time": 100,
                "2024-01-15T09:00:00+00:00": 50,
                "2024-01-15T10:00:00+00:00": True,
                "2024-01-15T11:00:00+00:00": "100",
                "2024-01-15T12:00:00+00:00": [100],
                "2024-01-15T13:00:00+00:00": 0.0,
            }
        )

        with caplog.at_level(logging.WARNING, logger="statuswatch.uptime"):
            recorder = UptimeRecorder(store)

        assert recorder.as_mapping() == {
            "2024-01-15T08:00:00+00:00": 100,
            "2024-01-15T13:00:00+00:00": 0,
        }
        assert len([r for r in caplog.records if "Dropping" in r.getMessage()]) == 5

    def test_load_prunes_stale_buckets_when_now_given(self) -> None:
        store = InMemoryUptimeStore(
            {"2024-01-10T08:00:00+00:00": 100, "2024-01-15T09:00:00+00:00": 100}
        )

        recorder = UptimeRecorder(store, now=NOW)

        assert recorder.as_mapping() == {"2024-01-15T09:00:00+00:00": 100}

    def test_load_keeps_newest_buckets_without_now(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        start = NOW.replace(minute=0) - timedelta(hours=29)
        stored: dict[str, object] = {
            format_bucket_key(start + timedelta(hours=i)): 100 for i in range(30)
        }

        with caplog.at_level(logging.WARNING, logger="statuswatch.uptime"):
            recorder = UptimeRecorder(InMemoryUptimeStore(stored))

        assert len(recorder) == MAX_BUCKETS
        assert list(recorder.as_mapping()) == [
            format_bucket_key(start + timedelta(hours=i)) for i in range(6, 30)
        ]
        assert "keeping the newest 24" in caplog.text

    def test_unreadable_store_starts_empty(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="statuswatch.uptime"):
            recorder = UptimeRecorder(BrokenStore())

        assert len(recorder) == 0
        assert "starting empty" in caplog.text

    def test_save_failure_does_not_lose_sample(self, caplog: pytest.LogCaptureFixture) -> None:
        recorder = UptimeRecorder(BrokenStore())

        with caplog.at_level(logging.ERROR, logger="statuswatch.uptime"):
            bucket = recorder.record(NOW, True)

        assert recorder.history() == [bucket]
        assert "Failed to persist" in caplog.text

    def test_history_survives_restart(self) -> None:
        store = InMemoryUptimeStore()
        UptimeRecorder(store).record(NOW, True)

        restarted = UptimeRecorder(store, now=NOW + timedelta(minutes=10))

        assert restarted.history() == [UptimeBucket(truncate_to_hour(NOW), 100)]
