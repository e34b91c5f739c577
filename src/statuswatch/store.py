"""Persistence adapters for the uptime history.

The history is stored as a single named record: a JSON object mapping
ISO-8601 hour timestamps to integer percentages. Stores only move that
mapping in and out; validation of keys and values belongs to the recorder.
"""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from statuswatch.errors import PersistenceError
from statuswatch.logging import get_logger

logger = get_logger(__name__)

DEFAULT_RECORD_NAME = "statuswatch_uptime"


class UptimeStore(ABC):
    """Abstract interface for uptime history persistence.

    Implementations:
    - JsonFileUptimeStore (one JSON file per record)
    - InMemoryUptimeStore (tests, or running without a state directory)
    """

    @abstractmethod
    def load(self) -> dict[str, object]:
        """Read the stored record.

        Returns:
            The stored mapping, or an empty dict when nothing has been stored.

        Raises:
            PersistenceError: If the record exists but cannot be read or decoded.
        """
        pass

    @abstractmethod
    def save(self, data: dict[str, int]) -> None:
        """Replace the stored record.

        Raises:
            PersistenceError: If the record cannot be written.
        """
        pass


class JsonFileUptimeStore(UptimeStore):
    """Stores the record as ``{directory}/{record_name}.json``.

    Writes go to a temporary file in the same directory which then replaces
    the record, so a crash mid-write never leaves a truncated file behind.
    """

    def __init__(self, directory: Path, record_name: str = DEFAULT_RECORD_NAME) -> None:
        self.directory = directory
        self.record_name = record_name

    @property
    def path(self) -> Path:
        return self.directory / f"{self.record_name}.json"

    def load(self) -> dict[str, object]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except PermissionError as e:
            raise PersistenceError(f"Permission denied reading {self.path}: {e}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Corrupt uptime record {self.path}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(
                f"Corrupt uptime record {self.path}: expected an object, "
                f"got {type(data).__name__}"
            )
        return data

    def save(self, data: dict[str, int]) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.record_name}.", suffix=".tmp", dir=self.directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except PermissionError as e:
            raise PersistenceError(f"Permission denied writing to {self.path}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Failed to write to {self.path}: {e}") from e
        logger.debug("Saved %s uptime bucket(s) to %s", len(data), self.path)


class InMemoryUptimeStore(UptimeStore):
    """Keeps the record in process memory."""

    def __init__(self, initial: dict[str, object] | None = None) -> None:
        self.data: dict[str, object] = dict(initial or {})
        self.save_count = 0

    def load(self) -> dict[str, object]:
        return dict(self.data)

    def save(self, data: dict[str, int]) -> None:
        self.data = dict(data)
        self.save_count += 1


__all__ = [
    "DEFAULT_RECORD_NAME",
    "InMemoryUptimeStore",
    "JsonFileUptimeStore",
    "UptimeStore",
]
