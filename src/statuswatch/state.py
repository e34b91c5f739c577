"""Poll state shared between the scheduler and its components.

PollState is owned by the scheduler and passed by reference to the fetcher,
so separate scheduler instances never share a remembered route or history.

Writers:
- ``last_good_index``: FailoverFetcher only
- ``recorder`` buckets: UptimeRecorder only
"""

from __future__ import annotations

from dataclasses import dataclass, field

from statuswatch.uptime import UptimeRecorder


@dataclass
class PollState:
    """Process-wide poll state.

    Attributes:
        last_good_index: Registry position of the route that last answered.
            Lives for the process lifetime only.
        recorder: Uptime history, persisted across restarts by its store.
    """

    last_good_index: int = 0
    recorder: UptimeRecorder = field(default_factory=UptimeRecorder)
