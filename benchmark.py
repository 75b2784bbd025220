import argparse
import asyncio
import os
import tempfile
import time
from datetime import datetime, timezone

from py_read_models import (
    BaseProjection,
    InMemoryReadModelStore,
    ProjectedEvent,
    ProjectionRebuildManager,
    ReadModel,
)
from py_read_models.adaptors.sqlite import sqlite_store_factory


class Counter(ReadModel):
    hits: int = 0


class CounterProjection(BaseProjection[Counter]):
    name = "Counter"

    async def project(self, event: ProjectedEvent) -> None:
        counter = await self.store.find_by_id(event.aggregate_id)
        if counter is None:
            counter = Counter(id=event.aggregate_id)
        counter.hits += 1
        counter.version = event.aggregate_version
        await self.store.save(counter)


def make_events(num_events: int, num_aggregates: int) -> list[ProjectedEvent]:
    now = datetime.now(timezone.utc)
    versions = [0] * num_aggregates
    events = []
    for i in range(num_events):
        agg = i % num_aggregates
        versions[agg] += 1
        events.append(
            ProjectedEvent(
                event_id=f"e{i}",
                event_type="Hit",
                aggregate_id=f"agg-{agg}",
                aggregate_version=versions[agg],
                occurred_at=now,
            )
        )
    return events


async def run_mode(store, events) -> float:
    manager = ProjectionRebuildManager()
    manager.register(CounterProjection(store))
    start = time.perf_counter()
    result = await manager.rebuild("Counter", events)
    elapsed = time.perf_counter() - start
    assert result.errors == 0
    assert result.events_processed == len(events)
    return elapsed


async def benchmark(num_events: int, num_aggregates: int):
    print(f"Benchmarking rebuild of {num_events} events over {num_aggregates} aggregates...")
    events = make_events(num_events, num_aggregates)

    mem_time = await run_mode(InMemoryReadModelStore(), events)

    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "bench.db")
        async with sqlite_store_factory(db_path) as stores:
            file_time = await run_mode(stores.read_model_store("Counter", Counter), events)

    print(f"\n--- Results for {num_events} events ---")
    print(f"In-memory store   - Rebuild: {mem_time:.4f}s ({num_events / mem_time:,.0f} events/s)")
    print(f"File-based SQLite - Rebuild: {file_time:.4f}s ({num_events / file_time:,.0f} events/s)")


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--num-events", type=int, default=1000)
    parser.add_argument("--num-aggregates", type=int, default=50)
    args = parser.parse_args()
    await benchmark(args.num_events, args.num_aggregates)


if __name__ == "__main__":
    asyncio.run(main())
