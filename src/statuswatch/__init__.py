"""StatusWatch - game server status poller with failover and uptime history."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("statuswatch")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source without pip install)
    __version__ = "0.0.0.dev0"

# Re-export core public API
from statuswatch.app import main
from statuswatch.endpoints import EndpointDescriptor, EndpointRegistry, ResponseShape
from statuswatch.fetcher import FailoverFetcher, FetchResult
from statuswatch.normalizer import StatusSnapshot, normalize
from statuswatch.scheduler import CycleResult, PollOutcome, PollScheduler
from statuswatch.state import PollState
from statuswatch.uptime import UptimeBucket, UptimeRecorder

# NOTE: Update this list when adding new exports to this module.
__all__ = [
    "__version__",
    "CycleResult",
    "EndpointDescriptor",
    "EndpointRegistry",
    "FailoverFetcher",
    "FetchResult",
    "PollOutcome",
    "PollScheduler",
    "PollState",
    "ResponseShape",
    "StatusSnapshot",
    "UptimeBucket",
    "UptimeRecorder",
    "main",
    "normalize",
]
