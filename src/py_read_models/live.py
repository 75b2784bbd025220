import asyncio

from .consistency import ConsistencyMonitor
from .models import ProjectedEvent
from .protocols import Projection
from .rebuild import Events, iter_events


class LiveProjector:
    """
    Applies events to one projection as they arrive.

    Calls to `project` are serialized so a projection never sees two events
    at once, and each successful application is reported to the monitor as a
    lag sample. Failures are not retried or swallowed: the caller owns the
    retry/skip/dead-letter decision for live traffic.
    """

    def __init__(self, projection: Projection, monitor: ConsistencyMonitor | None = None):
        self.projection = projection
        self.monitor = monitor
        self._lock = asyncio.Lock()

    async def apply(self, event: ProjectedEvent) -> None:
        async with self._lock:
            await self.projection.project(event)
            if self.monitor is not None:
                self.monitor.record_event_applied(self.projection.name, event)

    async def consume(self, events: Events) -> int:
        """Applies events in order and returns how many were applied."""
        applied = 0
        async for event in iter_events(events):
            await self.apply(event)
            applied += 1
        return applied
