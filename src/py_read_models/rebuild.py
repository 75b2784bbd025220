"""
This module implements full-rebuild orchestration for projections.

A rebuild discards a projection's materialized state and replays an event log
into it. One bad event must not block reconstruction of the rest of the view,
so per-event failures are caught, counted and logged, and the loop moves on.
Only an unknown projection name is fatal.
"""
import asyncio
import logging
import time
from collections.abc import AsyncIterable as AsyncIterableABC
from typing import AsyncIterable, AsyncIterator, Dict, Iterable, List

from .models import ProjectedEvent, RebuildResult
from .protocols import Projection

Events = Iterable[ProjectedEvent] | AsyncIterable[ProjectedEvent]


class ProjectionNotRegisteredError(ValueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Projection not registered: {name}")


async def iter_events(events: Events) -> AsyncIterator[ProjectedEvent]:
    if isinstance(events, AsyncIterableABC):
        async for event in events:
            yield event
    else:
        for event in events:
            yield event


class ProjectionRebuildManager:
    """
    Registry of named projections that can reset and replay any of them.

    `concurrent` controls whether `rebuild_all` runs projections in parallel.
    `event_timeout` (seconds), when set, bounds every `project` call; a timeout
    is counted like any other per-event failure.
    """

    def __init__(self, *, concurrent: bool = True, event_timeout: float | None = None):
        self.concurrent = concurrent
        self.event_timeout = event_timeout
        self._projections: Dict[str, Projection] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def register(self, projection: Projection) -> None:
        self._projections[projection.name] = projection

    def unregister(self, name: str) -> None:
        if name not in self._projections:
            raise ProjectionNotRegisteredError(name)
        del self._projections[name]
        lock = self._locks.get(name)
        if lock is not None and not lock.locked():
            del self._locks[name]

    def get_registered_projections(self) -> List[str]:
        return list(self._projections)

    def get_projection(self, name: str) -> Projection:
        projection = self._projections.get(name)
        if projection is None:
            raise ProjectionNotRegisteredError(name)
        return projection

    def _lock_for(self, name: str) -> asyncio.Lock:
        # One lock per name keeps overlapping rebuilds of the same projection
        # from interleaving their event application.
        if name not in self._locks:
            self._locks[name] = asyncio.Lock()
        return self._locks[name]

    async def _apply(self, projection: Projection, event: ProjectedEvent) -> None:
        if self.event_timeout is None:
            await projection.project(event)
        else:
            await asyncio.wait_for(projection.project(event), timeout=self.event_timeout)

    async def rebuild(self, name: str, events: Events) -> RebuildResult:
        projection = self.get_projection(name)

        async with self._lock_for(name):
            logging.info(f"Rebuilding projection {name}")
            start = time.perf_counter()
            await projection.reset()

            events_processed = 0
            failed_event_ids: List[str] = []
            async for event in iter_events(events):
                events_processed += 1
                try:
                    await self._apply(projection, event)
                except Exception as e:
                    failed_event_ids.append(event.event_id)
                    logging.warning(
                        f"Projection {name} failed on event {event.event_id} "
                        f"({event.event_type}, aggregate {event.aggregate_id} "
                        f"v{event.aggregate_version}): {e!r}"
                    )

            duration_ms = (time.perf_counter() - start) * 1000

        logging.info(
            f"Rebuilt projection {name}: {events_processed} events, "
            f"{len(failed_event_ids)} errors in {duration_ms:.1f}ms"
        )
        return RebuildResult(
            projection_name=name,
            events_processed=events_processed,
            errors=len(failed_event_ids),
            duration_ms=duration_ms,
            failed_event_ids=failed_event_ids,
        )

    async def rebuild_all(self, events: Events) -> Dict[str, RebuildResult]:
        """
        Rebuilds every registered projection from the same events. An async
        iterable is drained once up front so each projection sees the full log.
        If any rebuild raises, the others are cancelled and the first error is
        re-raised as is.
        """
        if isinstance(events, AsyncIterableABC):
            events = [event async for event in events]
        else:
            events = list(events)

        names = self.get_registered_projections()
        if self.concurrent:
            tasks = [asyncio.create_task(self.rebuild(name, events)) for name in names]
            try:
                results = await asyncio.gather(*tasks)
            except BaseException:
                # Stop the sibling rebuilds before the failure propagates.
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        else:
            results = [await self.rebuild(name, events) for name in names]
        return dict(zip(names, results))
