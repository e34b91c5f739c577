"""Hour-bucketed availability history.

Each poll outcome becomes a single sample (100 when online, 0 otherwise) in
the bucket for the hour it happened in. A later sample in the same hour
replaces the earlier one. Buckets older than 24 hours are dropped on every
write, so the history never holds more than ``MAX_BUCKETS`` entries.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import NamedTuple

from statuswatch.errors import PersistenceError
from statuswatch.logging import get_logger
from statuswatch.store import UptimeStore

logger = get_logger(__name__)

MAX_BUCKETS = 24
RETENTION = timedelta(hours=24)

ONLINE_PERCENTAGE = 100
OFFLINE_PERCENTAGE = 0
VALID_PERCENTAGES = frozenset({ONLINE_PERCENTAGE, OFFLINE_PERCENTAGE})


class UptimeBucket(NamedTuple):
    """One hour of history: the hour's start (UTC) and its percentage."""

    timestamp: datetime
    percentage: int


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` in UTC, treating naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def truncate_to_hour(moment: datetime) -> datetime:
    """Zero the minutes, seconds and microseconds of a UTC-normalized moment."""
    return as_utc(moment).replace(minute=0, second=0, microsecond=0)


def format_bucket_key(timestamp: datetime) -> str:
    """Render a bucket timestamp as the ISO-8601 key used in the store."""
    return truncate_to_hour(timestamp).isoformat()


def parse_bucket_key(key: str) -> datetime:
    """Parse a stored key back into an hour-truncated UTC datetime.

    Accepts full ISO-8601 strings as well as the short ``YYYY-MM-DDTHH:00``
    form written by older clients.

    Raises:
        ValueError: If the key is not an ISO-8601 timestamp.
    """
    return truncate_to_hour(datetime.fromisoformat(key.strip()))


class UptimeRecorder:
    """Rolling 24-hour history of poll outcomes.

    The recorder is the only writer of buckets. Every write is persisted
    through the store; persistence failures are logged and the in-memory
    history stays authoritative.
    """

    def __init__(self, store: UptimeStore | None = None, now: datetime | None = None) -> None:
        """Initialize the recorder and load any persisted history.

        Args:
            store: Persistence adapter. None keeps history in memory only.
            now: Reference time used to drop stale buckets from the loaded
                history. None loads every valid bucket as-is.
        """
        self._store = store
        self._buckets: dict[datetime, int] = self._load()
        if now is not None:
            self._prune(now)

    def record(self, now: datetime, online: bool) -> UptimeBucket:
        """Record one poll outcome and prune buckets older than 24 hours.

        Args:
            now: When the poll completed.
            online: Whether the server was reported online.

        Returns:
            The bucket that was written.
        """
        key = truncate_to_hour(now)
        percentage = ONLINE_PERCENTAGE if online else OFFLINE_PERCENTAGE
        self._buckets[key] = percentage
        self._prune(now)
        self._persist()
        return UptimeBucket(key, percentage)

    def history(self) -> list[UptimeBucket]:
        """Return up to the 24 most recent buckets, oldest first."""
        ordered = sorted(self._buckets.items())
        return [UptimeBucket(ts, pct) for ts, pct in ordered[-MAX_BUCKETS:]]

    def as_mapping(self) -> dict[str, int]:
        """Return the history keyed by ISO-8601 hour strings, oldest first."""
        return {format_bucket_key(ts): pct for ts, pct in sorted(self._buckets.items())}

    def uptime_percentage(self) -> float:
        """Mean percentage across the current buckets, 0.0 when there are none."""
        if not self._buckets:
            return 0.0
        return sum(self._buckets.values()) / len(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    def _prune(self, now: datetime) -> None:
        cutoff = as_utc(now) - RETENTION
        for key in [k for k in self._buckets if k < cutoff]:
            del self._buckets[key]

        # A write exactly on the hour keeps the bucket 24h back; cap the count
        excess = len(self._buckets) - MAX_BUCKETS
        if excess > 0:
            for key in sorted(self._buckets)[:excess]:
                del self._buckets[key]

    def _persist(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(self.as_mapping())
        except PersistenceError as e:
            logger.error("Failed to persist uptime history: %s", e)

    def _load(self) -> dict[datetime, int]:
        if self._store is None:
            return {}
        try:
            raw = self._store.load()
        except PersistenceError as e:
            logger.warning("Ignoring unreadable uptime history, starting empty: %s", e)
            return {}

        buckets: dict[datetime, int] = {}
        for key, value in raw.items():
            try:
                timestamp = parse_bucket_key(str(key))
            except ValueError:
                logger.warning("Dropping uptime bucket with invalid timestamp %r", key)
                continue
            if (
                isinstance(value, bool)
                or not isinstance(value, (int, float))
                or value not in VALID_PERCENTAGES
            ):
                logger.warning("Dropping uptime bucket %s with invalid value %r", key, value)
                continue
            buckets[timestamp] = int(value)

        if len(buckets) > MAX_BUCKETS:
            logger.warning(
                "Uptime history holds %s buckets, keeping the newest %s", len(buckets), MAX_BUCKETS
            )
            buckets = dict(sorted(buckets.items())[-MAX_BUCKETS:])

        logger.debug("Loaded %s uptime bucket(s)", len(buckets))
        return buckets


__all__ = [
    "MAX_BUCKETS",
    "RETENTION",
    "UptimeBucket",
    "UptimeRecorder",
    "as_utc",
    "format_bucket_key",
    "parse_bucket_key",
    "truncate_to_hour",
]
