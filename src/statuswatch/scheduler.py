"""Poll scheduling for StatusWatch.

The PollScheduler runs poll cycles (fetch -> normalize -> record -> notify)
on a fixed interval and on demand. It is the only concurrency gate: a
trigger that arrives while a cycle is in flight is dropped, never queued,
so at most one cycle touches the poll state at a time.

Every cycle ends with exactly one ``on_status`` notification. When no route
answers, or the fetch fails unexpectedly, the cycle records the hour as down,
notifies listeners with an offline placeholder snapshot marked ``degraded``
and sends one ``on_degraded`` signal.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from statuswatch.errors import TotalFailure
from statuswatch.fetcher import FailoverFetcher
from statuswatch.listeners import StatusListener
from statuswatch.logging import ContextAdapter, get_logger
from statuswatch.normalizer import StatusSnapshot
from statuswatch.state import PollState
from statuswatch.uptime import UptimeBucket

logger = get_logger(__name__)

DEGRADED_REASON = "All server status routes are unavailable, showing placeholder data"


class PollOutcome(Enum):
    """What a poll cycle learned about the server."""

    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"  # No route answered


@dataclass(frozen=True)
class CycleResult:
    """Result of one poll cycle, as handed to callers of ``refresh_now``."""

    cycle: int
    snapshot: StatusSnapshot
    outcome: PollOutcome
    history: tuple[UptimeBucket, ...]
    completed_at: datetime
    route_id: int | None = None
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.outcome is PollOutcome.UNKNOWN


@dataclass(frozen=True)
class ServerInfo:
    """Summary of the monitored server and its recorded uptime."""

    address: str
    port: int | None
    uptime: dict[str, int]
    last_update: datetime | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "port": self.port,
            "uptime": dict(self.uptime),
            "last_update": self.last_update.isoformat() if self.last_update else None,
        }


def utc_now() -> datetime:
    return datetime.now(UTC)


class PollScheduler:
    """Drives periodic and on-demand poll cycles without overlap.

    Usage::

        scheduler = PollScheduler(fetcher, state, listeners=[listener])
        scheduler.start(interval=25.0)
        ...
        await scheduler.refresh_now()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        fetcher: FailoverFetcher,
        state: PollState,
        listeners: Iterable[StatusListener] = (),
        clock: Callable[[], datetime] = utc_now,
        server_address: str = "",
        server_port: int | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            fetcher: Failover fetcher bound to ``state``.
            state: Poll state owned by this scheduler.
            listeners: Consumers notified after every cycle.
            clock: Source of the current time for uptime bucketing.
            server_address: Monitored server address, for ``server_info``.
            server_port: Monitored server port, for ``server_info``.

        Raises:
            ValueError: If the fetcher is bound to a different PollState.
        """
        if fetcher.state is not state:
            raise ValueError("fetcher must share the scheduler's PollState")
        self._fetcher = fetcher
        self._state = state
        self._listeners: list[StatusListener] = list(listeners)
        self._clock = clock
        self._server_address = server_address
        self._server_port = server_port

        self._in_flight = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._stop_requested = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

        self._cycle_count = 0
        self._dropped_triggers = 0
        self._last_result: CycleResult | None = None

    @property
    def is_polling(self) -> bool:
        """Whether a poll cycle is currently in flight."""
        return self._in_flight

    @property
    def is_running(self) -> bool:
        """Whether periodic polling is active."""
        return self._task is not None and not self._task.done()

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def dropped_triggers(self) -> int:
        """Number of triggers dropped because a cycle was already in flight."""
        return self._dropped_triggers

    @property
    def last_good_index(self) -> int:
        return self._state.last_good_index

    @property
    def last_result(self) -> CycleResult | None:
        return self._last_result

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        self._listeners.remove(listener)

    def history(self) -> list[UptimeBucket]:
        """Return a copy of the uptime history, oldest first."""
        return self._state.recorder.history()

    def server_info(self) -> ServerInfo:
        return ServerInfo(
            address=self._server_address,
            port=self._server_port,
            uptime=self._state.recorder.as_mapping(),
            last_update=self._last_result.completed_at if self._last_result else None,
        )

    def start(self, interval: float, run_immediately: bool = True) -> None:
        """Begin periodic polling on the running event loop.

        Args:
            interval: Seconds to wait after each cycle before the next one.
            run_immediately: Run the first cycle now instead of after one interval.

        Raises:
            ValueError: If interval is not positive.
            RuntimeError: If polling is already running or no loop is running.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if self.is_running:
            raise RuntimeError("Polling is already running")

        self._stop_requested.clear()
        self._task = asyncio.get_running_loop().create_task(
            self._run_loop(interval, run_immediately), name="statuswatch-poll-loop"
        )

    async def stop(self) -> None:
        """Stop periodic polling.

        A cycle already in flight runs to completion before this returns.
        """
        self._stop_requested.set()
        if self._task is not None:
            await self._task
            self._task = None
        await self._idle.wait()

    async def refresh_now(self) -> CycleResult | None:
        """Run a cycle now, outside the periodic schedule.

        Returns:
            The cycle result, or None if a cycle was already in flight and
            this trigger was dropped.
        """
        return await self.run_cycle()

    async def run_cycle(self) -> CycleResult | None:
        """Run one poll cycle unless one is already in flight.

        Returns:
            The cycle result, or None if the trigger was dropped.
        """
        if self._in_flight:
            self._dropped_triggers += 1
            logger.debug("Poll cycle already in flight, dropping trigger")
            return None

        self._in_flight = True
        self._idle.clear()
        self._cycle_count += 1
        cycle_logger = logger.with_context(cycle=self._cycle_count)
        try:
            result = await self._poll(cycle_logger)
            self._last_result = result
            self._notify(result, cycle_logger)
            return result
        finally:
            self._in_flight = False
            self._idle.set()

    async def _poll(self, cycle_logger: ContextAdapter) -> CycleResult:
        cycle_logger.debug("Poll cycle started")
        route_id: int | None = None
        error: str | None = None

        try:
            fetched = await self._fetcher.fetch_status()
        except TotalFailure as e:
            cycle_logger.error("%s", e, extra={"outcome": PollOutcome.UNKNOWN.value})
            snapshot = StatusSnapshot.offline(degraded=True)
            outcome = PollOutcome.UNKNOWN
            error = str(e)
        except Exception as e:
            # A fetch that broke outside the failover path still counts as a cycle
            cycle_logger.exception(
                "Unexpected error fetching status: %s",
                e,
                extra={"outcome": PollOutcome.UNKNOWN.value, "error_type": type(e).__name__},
            )
            snapshot = StatusSnapshot.offline(degraded=True)
            outcome = PollOutcome.UNKNOWN
            error = f"{type(e).__name__}: {e}"
        else:
            snapshot = fetched.snapshot
            route_id = fetched.route_id
            outcome = PollOutcome.ONLINE if snapshot.online else PollOutcome.OFFLINE

        now = self._clock()
        self._state.recorder.record(now, snapshot.online)

        cycle_logger.info(
            "Poll cycle completed: %s",
            outcome.value,
            extra={"outcome": outcome.value, "route_id": route_id},
        )
        return CycleResult(
            cycle=self._cycle_count,
            snapshot=snapshot,
            outcome=outcome,
            history=tuple(self._state.recorder.history()),
            completed_at=now,
            route_id=route_id,
            error=error,
        )

    def _notify(self, result: CycleResult, cycle_logger: ContextAdapter) -> None:
        reason = f"{DEGRADED_REASON} ({result.error})" if result.error else DEGRADED_REASON
        for listener in list(self._listeners):
            self._call_listener(
                listener.on_status, cycle_logger, result.snapshot, list(result.history)
            )
            if result.degraded:
                self._call_listener(listener.on_degraded, cycle_logger, reason)

    @staticmethod
    def _call_listener(
        callback: Callable[..., None], cycle_logger: ContextAdapter, *args: Any
    ) -> None:
        try:
            callback(*args)
        except Exception as e:
            # Listeners are outside our control and must never stop polling
            cycle_logger.exception(
                "Status listener %s failed: %s",
                getattr(callback, "__qualname__", repr(callback)),
                e,
                extra={"error_type": type(e).__name__},
            )

    async def _run_loop(self, interval: float, run_immediately: bool) -> None:
        logger.info("Starting status polling every %ss", interval)
        if not run_immediately:
            await self._wait_for_stop(interval)

        while not self._stop_requested.is_set():
            try:
                await self.run_cycle()
            except Exception as e:
                logger.exception(
                    "Unexpected error in poll cycle: %s",
                    e,
                    extra={"error_type": type(e).__name__},
                )
            await self._wait_for_stop(interval)

        logger.info("Status polling stopped")

    async def _wait_for_stop(self, timeout: float) -> None:
        try:
            async with asyncio.timeout(timeout):
                await self._stop_requested.wait()
        except TimeoutError:
            pass


__all__ = [
    "CycleResult",
    "DEGRADED_REASON",
    "PollOutcome",
    "PollScheduler",
    "ServerInfo",
    "utc_now",
]
