"""Normalization of route payloads into canonical status snapshots."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from statuswatch.endpoints import DEFAULT_WRAPPER_FIELD, ResponseShape
from statuswatch.errors import ParseError
from statuswatch.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_VERSION = "Unknown"


@dataclass(frozen=True)
class StatusSnapshot:
    """Shape-independent view of one status reading.

    When ``online`` is False every other field holds its offline default.
    ``degraded`` is only set on the placeholder produced when no route
    answered; it is never set by :func:`normalize`.
    """

    online: bool
    players_online: int = 0
    max_players: int = 0
    version: str = UNKNOWN_VERSION
    player_names: tuple[str, ...] = ()
    motd: tuple[str, ...] = ()
    degraded: bool = False

    @classmethod
    def offline(cls, degraded: bool = False) -> StatusSnapshot:
        """Snapshot with every field at its offline default."""
        return cls(online=False, degraded=degraded)

    def to_dict(self) -> dict[str, Any]:
        """Convert the snapshot to a plain dictionary for listeners and logs."""
        return {
            "online": self.online,
            "players_online": self.players_online,
            "max_players": self.max_players,
            "version": self.version,
            "player_names": list(self.player_names),
            "motd": list(self.motd),
            "degraded": self.degraded,
        }


def normalize(
    raw_payload: Any,
    response_shape: ResponseShape,
    wrapper_field: str = DEFAULT_WRAPPER_FIELD,
) -> StatusSnapshot:
    """Convert a route's raw payload into a StatusSnapshot.

    Args:
        raw_payload: Decoded JSON body returned by the route.
        response_shape: How the route delivers the status document.
        wrapper_field: Field holding the serialized document for WRAPPED routes.

    Returns:
        The canonical snapshot.

    Raises:
        ParseError: If the payload or the embedded document is malformed, or
            the document has no boolean ``online`` field.
    """
    if response_shape is ResponseShape.WRAPPED:
        document = _unwrap(raw_payload, wrapper_field)
    else:
        document = raw_payload

    if not isinstance(document, dict):
        raise ParseError(f"Status document must be an object, got {type(document).__name__}")

    if "online" not in document:
        raise ParseError("Status document has no 'online' field")
    online = document["online"]
    if not isinstance(online, bool):
        raise ParseError(f"'online' must be a boolean, got {type(online).__name__}")

    if not online:
        return StatusSnapshot.offline()

    players = document.get("players")
    if not isinstance(players, dict):
        players = {}

    version = document.get("version")
    version = str(version) if version is not None and str(version).strip() else UNKNOWN_VERSION

    return StatusSnapshot(
        online=True,
        players_online=_count(players.get("online")),
        max_players=_count(players.get("max")),
        version=version,
        player_names=_player_names(players.get("list")),
        motd=_motd_lines(document.get("motd")),
    )


def _unwrap(raw_payload: Any, wrapper_field: str) -> Any:
    """Parse the status document embedded as a string in a wrapper object."""
    if not isinstance(raw_payload, dict):
        raise ParseError(
            f"Wrapped payload must be an object, got {type(raw_payload).__name__}"
        )
    inner = raw_payload.get(wrapper_field)
    if inner is None:
        raise ParseError(f"Wrapped payload has no '{wrapper_field}' field")
    if not isinstance(inner, str):
        # Some proxy builds already decode the contents
        return inner
    try:
        return json.loads(inner)
    except json.JSONDecodeError as e:
        raise ParseError(f"Wrapped '{wrapper_field}' is not valid JSON: {e}") from e
    except RecursionError as e:
        raise ParseError(f"Wrapped '{wrapper_field}' is nested too deeply to decode") from e


def _count(value: Any) -> int:
    """Read a non-negative player count, 0 when missing or malformed."""
    if isinstance(value, bool):
        return 0
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(parsed, 0)


def _player_names(entries: Any) -> tuple[str, ...]:
    """Extract player names from bare strings or ``{"name": ...}`` records."""
    if not isinstance(entries, list):
        return ()

    names: list[str] = []
    for entry in entries:
        if isinstance(entry, dict):
            name = entry.get("name")
        else:
            name = entry
        if name is None or isinstance(name, (dict, list)):
            logger.debug("Skipping player entry without a usable name: %r", entry)
            continue
        text = str(name).strip()
        if text:
            names.append(text)
    return tuple(names)


def _motd_lines(motd: Any) -> tuple[str, ...]:
    if not isinstance(motd, dict):
        return ()
    clean = motd.get("clean")
    if not isinstance(clean, list):
        return ()
    return tuple(str(line).strip() for line in clean if str(line).strip())


__all__ = [
    "StatusSnapshot",
    "UNKNOWN_VERSION",
    "normalize",
]
