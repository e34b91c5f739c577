"""Application runner for StatusWatch.

This module wires configuration, logging, persistence, the failover fetcher
and the poll scheduler together, and runs either a single cycle (--once) or
the periodic loop until SIGINT/SIGTERM.
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime

import httpx

from statuswatch.cli import parse_args
from statuswatch.config import Config, load_config
from statuswatch.endpoints import build_registry
from statuswatch.fetcher import FailoverFetcher
from statuswatch.listeners import LoggingStatusListener, StatusListener
from statuswatch.logging import get_logger, setup_logging
from statuswatch.scheduler import PollScheduler, utc_now
from statuswatch.shutdown import ShutdownHandler
from statuswatch.state import PollState
from statuswatch.store import JsonFileUptimeStore
from statuswatch.uptime import UptimeRecorder

logger = get_logger(__name__)


def apply_cli_overrides(config: Config, parsed: argparse.Namespace) -> Config:
    """Return a copy of ``config`` with command-line overrides applied."""
    overrides: dict[str, object] = {}
    if parsed.interval is not None:
        if parsed.interval > 0:
            overrides["poll_interval"] = parsed.interval
        else:
            logger.warning(
                "Ignoring non-positive --interval %s, using %ss",
                parsed.interval,
                config.poll_interval,
            )
    if parsed.log_level is not None:
        overrides["log_level"] = parsed.log_level
    if parsed.state_dir is not None:
        overrides["state_dir"] = parsed.state_dir
    return replace(config, **overrides) if overrides else config


def build_scheduler(
    config: Config,
    listeners: Iterable[StatusListener] | None = None,
    client: httpx.AsyncClient | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> tuple[PollScheduler, FailoverFetcher]:
    """Assemble the poll scheduler and its fetcher from configuration.

    Args:
        config: Application configuration.
        listeners: Listeners to notify; defaults to a LoggingStatusListener.
        client: Optional HTTP client for the fetcher.
        clock: Source of the current time for uptime bucketing.

    Returns:
        The scheduler and the fetcher, which the caller must close.
    """
    store = JsonFileUptimeStore(config.state_dir, config.uptime_record)
    state = PollState(recorder=UptimeRecorder(store, now=clock()))
    registry = build_registry(config.server_address, config.server_port)
    fetcher = FailoverFetcher(
        registry,
        state,
        client=client,
        attempt_timeout=config.request_timeout,
    )
    scheduler = PollScheduler(
        fetcher,
        state,
        listeners=[LoggingStatusListener()] if listeners is None else listeners,
        clock=clock,
        server_address=config.server_address,
        server_port=config.server_port,
    )
    return scheduler, fetcher


async def run_once_mode(scheduler: PollScheduler) -> int:
    """Run a single poll cycle.

    Returns:
        Exit code: 0 if a route answered, 1 if every route failed.
    """
    logger.info("Running single poll cycle (--once mode)")
    result = await scheduler.refresh_now()
    if result is None or result.degraded:
        return 1
    return 0


async def run_continuous_mode(scheduler: PollScheduler, interval: float) -> int:
    """Poll every ``interval`` seconds until a shutdown signal arrives.

    Returns:
        Exit code: 0 after a graceful shutdown.
    """
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()
    handler = ShutdownHandler(on_shutdown=shutdown_event.set)
    handler.install_signal_handlers(loop)

    scheduler.start(interval)
    try:
        await shutdown_event.wait()
    finally:
        await scheduler.stop()
        handler.remove_signal_handlers(loop)
    return 0


async def run_application(parsed: argparse.Namespace, config: Config) -> int:
    """Run the application in the mode selected on the command line."""
    scheduler, fetcher = build_scheduler(config)
    logger.info(
        "Monitoring %s:%s through %s route(s)",
        config.server_address,
        config.server_port,
        len(fetcher.registry),
    )
    async with fetcher:
        if parsed.once:
            return await run_once_mode(scheduler)
        return await run_continuous_mode(scheduler, config.poll_interval)


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Optional list of command-line arguments.

    Returns:
        Exit code for the application.
    """
    parsed = parse_args(args)
    config = apply_cli_overrides(load_config(parsed.env_file), parsed)
    setup_logging(level=config.log_level, json_format=config.log_json)

    try:
        return asyncio.run(run_application(parsed, config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


__all__ = [
    "apply_cli_overrides",
    "build_scheduler",
    "main",
    "run_application",
    "run_continuous_mode",
    "run_once_mode",
]
