"""Signal-driven shutdown for the polling runner.

SIGINT and SIGTERM are turned into a stop request on the event loop instead
of killing the process, so an in-flight cycle can finish and persist its
uptime bucket.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Callable

from statuswatch.logging import get_logger

logger = get_logger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownHandler:
    """Turns the first stop request into a single ``on_shutdown`` call.

    Later requests (a second Ctrl+C, a SIGTERM after SIGINT) are logged and
    otherwise ignored.
    """

    def __init__(self, on_shutdown: Callable[[], None] | None = None) -> None:
        self._requested = False
        self._on_shutdown = on_shutdown

    @property
    def shutdown_requested(self) -> bool:
        return self._requested

    def request_shutdown(self) -> None:
        if self._requested:
            logger.debug("Stop already requested, ignoring")
            return
        self._requested = True
        logger.info("Stopping status polling")
        if self._on_shutdown is not None:
            self._on_shutdown()

    def handle_signal(self, signum: int) -> None:
        """Loop signal callback for SIGINT and SIGTERM."""
        logger.info("Received %s, finishing the current cycle", signal.Signals(signum).name)
        self.request_shutdown()

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Route SIGINT and SIGTERM to :meth:`handle_signal` on ``loop``.

        Where the loop has no signal support (Windows) the default handlers
        stay in place and Ctrl+C raises KeyboardInterrupt.
        """
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.handle_signal, sig)
            except NotImplementedError:
                logger.debug("Event loop does not support signal handlers")
                return
        logger.debug("Installed handlers for %s", ", ".join(s.name for s in SHUTDOWN_SIGNALS))

    def remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                return


__all__ = [
    "SHUTDOWN_SIGNALS",
    "ShutdownHandler",
]
