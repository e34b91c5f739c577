"""Command-line options for the ``statuswatch`` runner.

Options override the matching ``STATUSWATCH_*`` environment settings.
"""

from __future__ import annotations

import argparse
from pathlib import Path

LOG_LEVEL_CHOICES = ("DEBUG", "INFO", "WARNING", "ERROR")


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse the runner's command line.

    Args:
        args: Argument list; None reads ``sys.argv``.

    Returns:
        Namespace with ``once``, ``interval``, ``log_level``, ``state_dir`` and
        ``env_file``. Options that were not given are None (``once`` is False).
    """
    parser = argparse.ArgumentParser(
        prog="statuswatch",
        description="Poll a game server's status through failover routes and "
        "keep a rolling 24-hour uptime history.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="run one poll cycle and exit; exit code 1 if no route answered",
    )
    parser.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        help="seconds between poll cycles (STATUSWATCH_POLL_INTERVAL)",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVEL_CHOICES,
        help="log level (STATUSWATCH_LOG_LEVEL)",
    )
    parser.add_argument(
        "--state-dir",
        type=Path,
        metavar="DIR",
        help="directory holding the uptime record (STATUSWATCH_STATE_DIR)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        metavar="PATH",
        help=".env file to load before reading the environment (default: ./.env)",
    )
    return parser.parse_args(args)


__all__ = ["parse_args"]
