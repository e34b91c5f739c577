"""Environment-driven configuration.

Every setting is read from a ``STATUSWATCH_*`` variable, optionally seeded
from a ``.env`` file. A malformed value never stops startup: it is logged
and the default is used instead.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from statuswatch.store import DEFAULT_RECORD_NAME

ENV_PREFIX = "STATUSWATCH_"

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

MIN_PORT = 1
MAX_PORT = 65535


@dataclass(frozen=True)
class Config:
    """Runtime settings. Frozen; build a modified copy with ``dataclasses.replace``."""

    # Monitored server
    server_address: str = "play.legacyverse.tech"
    server_port: int = 25577

    # Polling
    poll_interval: float = 25.0  # seconds between cycles
    request_timeout: float = 10.0  # seconds per route attempt

    # Uptime persistence
    state_dir: Path = Path("./state")
    uptime_record: str = DEFAULT_RECORD_NAME

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


def _env(suffix: str, default: str = "") -> str:
    return os.getenv(f"{ENV_PREFIX}{suffix}", default)


def _parse_port(value: str, name: str, default: int) -> int:
    """Parse a TCP port.

    Args:
        value: Raw variable value.
        name: Variable name, for the warning.
        default: Returned when ``value`` is not an integer in MIN_PORT..MAX_PORT.
    """
    try:
        port = int(value)
    except ValueError:
        logging.warning("%s=%r is not a valid integer, falling back to %d", name, value, default)
        return default
    if not MIN_PORT <= port <= MAX_PORT:
        logging.warning(
            "%s=%d is not a valid port (expected %d-%d), falling back to %d",
            name,
            port,
            MIN_PORT,
            MAX_PORT,
            default,
        )
        return default
    return port


def _parse_positive_float(value: str, name: str, default: float) -> float:
    """Parse a number of seconds that must be greater than zero."""
    try:
        number = float(value)
    except ValueError:
        logging.warning("%s=%r is not a number, falling back to %s", name, value, default)
        return default
    if number <= 0:
        logging.warning("%s=%s must be positive, falling back to %s", name, number, default)
        return default
    return number


def _validate_log_level(value: str, default: str = "INFO") -> str:
    level = value.strip().upper()
    if level in VALID_LOG_LEVELS:
        return level
    logging.warning(
        "%sLOG_LEVEL=%r is not one of %s, falling back to %s",
        ENV_PREFIX,
        value,
        ", ".join(sorted(VALID_LOG_LEVELS)),
        default,
    )
    return default


def _validate_record_name(value: str, default: str = DEFAULT_RECORD_NAME) -> str:
    """Check the uptime record name, which is used as a file name in the state dir."""
    name = value.strip()
    if name and not name.startswith(".") and "/" not in name and "\\" not in name:
        return name
    logging.warning(
        "%sUPTIME_RECORD=%r cannot be used as a record name, falling back to %r",
        ENV_PREFIX,
        value,
        default,
    )
    return default


def _parse_bool(value: str) -> bool:
    """Treat "true", "1" and "yes" (any case) as True, anything else as False."""
    return value.strip().lower() in {"true", "1", "yes"}


def load_config(env_file: Path | None = None) -> Config:
    """Build a Config from the environment.

    Args:
        env_file: ``.env`` file to load first. None searches for ``.env``
            starting in the current directory. Variables already set in the
            environment win over the file.

    Returns:
        The loaded configuration.
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    defaults = Config()
    return Config(
        server_address=_env("SERVER_ADDRESS").strip() or defaults.server_address,
        server_port=_parse_port(
            _env("SERVER_PORT", str(defaults.server_port)),
            f"{ENV_PREFIX}SERVER_PORT",
            defaults.server_port,
        ),
        poll_interval=_parse_positive_float(
            _env("POLL_INTERVAL", str(defaults.poll_interval)),
            f"{ENV_PREFIX}POLL_INTERVAL",
            defaults.poll_interval,
        ),
        request_timeout=_parse_positive_float(
            _env("REQUEST_TIMEOUT", str(defaults.request_timeout)),
            f"{ENV_PREFIX}REQUEST_TIMEOUT",
            defaults.request_timeout,
        ),
        state_dir=Path(_env("STATE_DIR") or defaults.state_dir),
        uptime_record=_validate_record_name(_env("UPTIME_RECORD", defaults.uptime_record)),
        log_level=_validate_log_level(_env("LOG_LEVEL", defaults.log_level)),
        log_json=_parse_bool(_env("LOG_JSON")),
    )
