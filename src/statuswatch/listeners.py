"""Listener interface for consumers of poll results.

Rendering, charts and notifications live outside StatusWatch. They receive
each cycle's snapshot and history through this interface and never see the
scheduler's internal state.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from statuswatch.logging import get_logger
from statuswatch.normalizer import StatusSnapshot
from statuswatch.uptime import UptimeBucket

logger = get_logger(__name__)


@runtime_checkable
class StatusListener(Protocol):
    """Receives the result of every poll cycle.

    ``on_status`` is called exactly once per cycle. ``on_degraded`` is called
    in addition when no route answered and the snapshot is a placeholder,
    so listeners can tell "confirmed offline" from "no data".
    """

    def on_status(self, snapshot: StatusSnapshot, history: list[UptimeBucket]) -> None: ...

    def on_degraded(self, reason: str) -> None: ...


class LoggingStatusListener:
    """Listener that writes each cycle to the log. Used by the CLI runner."""

    def on_status(self, snapshot: StatusSnapshot, history: list[UptimeBucket]) -> None:
        if snapshot.degraded:
            # Reported through on_degraded
            return
        if snapshot.online:
            players = ", ".join(snapshot.player_names) or "none listed"
            logger.info(
                "Server online: %s/%s players (%s), version %s",
                snapshot.players_online,
                snapshot.max_players,
                players,
                snapshot.version,
            )
        else:
            logger.info("Server offline")

        if history:
            average = sum(bucket.percentage for bucket in history) / len(history)
            logger.info("Uptime over last %s hour(s): %.1f%%", len(history), average)

    def on_degraded(self, reason: str) -> None:
        logger.warning("Status unavailable: %s", reason)


__all__ = [
    "LoggingStatusListener",
    "StatusListener",
]
