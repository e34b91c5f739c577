"""Exception hierarchy for StatusWatch.

Recovery rules:
- TransportError and ParseError are attempt failures; the failover fetcher
  moves on to the next route.
- TotalFailure means every route failed; the scheduler substitutes a degraded
  snapshot and tells listeners.
- PersistenceError is logged by the uptime recorder and never affects a cycle.
"""

from __future__ import annotations

from collections.abc import Mapping


class StatusWatchError(Exception):
    """Base class for all StatusWatch errors."""

    pass


class TransportError(StatusWatchError):
    """Raised when a route fails at the HTTP level.

    Covers connection errors, timeouts and non-success status codes.
    """

    def __init__(self, route_id: int, message: str) -> None:
        self.route_id = route_id
        super().__init__(f"route {route_id}: {message}")


class ParseError(StatusWatchError):
    """Raised when a payload does not match the expected status document shape."""

    pass


class TotalFailure(StatusWatchError):
    """Raised when every route failed in a single fetch.

    Attributes:
        attempts: Mapping of route id to the error that route produced, in
            attempt order.
    """

    def __init__(self, attempts: Mapping[int, Exception]) -> None:
        self.attempts: dict[int, Exception] = dict(attempts)
        summary = "; ".join(f"{route_id}: {error}" for route_id, error in self.attempts.items())
        super().__init__(f"All {len(self.attempts)} status routes failed ({summary})")


class PersistenceError(StatusWatchError):
    """Raised when the uptime store cannot be read or written."""

    pass


__all__ = [
    "ParseError",
    "PersistenceError",
    "StatusWatchError",
    "TotalFailure",
    "TransportError",
]
