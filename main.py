import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict

from py_read_models import (
    BaseProjection,
    ConsistencyMonitor,
    InMemoryReadModelStore,
    InMemorySnapshotStore,
    LiveProjector,
    ProjectedEvent,
    ProjectionRebuildManager,
    ReadModel,
    Snapshot,
    should_take_snapshot,
)


class AccountBalance(ReadModel):
    owner: str
    balance: int = 0


class AccountBalanceProjection(BaseProjection[AccountBalance]):
    name = "AccountBalance"

    async def project(self, event: ProjectedEvent) -> None:
        if event.event_type == "AccountOpened":
            await self.store.save(
                AccountBalance(
                    id=event.aggregate_id,
                    owner=event.payload["owner"],
                    version=event.aggregate_version,
                    updated_at=event.occurred_at,
                )
            )
            return

        account = await self.store.find_by_id(event.aggregate_id)
        if account is None:
            raise LookupError(f"No account {event.aggregate_id} for {event.event_type}")
        if event.event_type == "MoneyDeposited":
            account.balance += event.payload["amount"]
        elif event.event_type == "MoneyWithdrawn":
            account.balance -= event.payload["amount"]
        else:
            return
        account.version = event.aggregate_version
        account.updated_at = event.occurred_at
        await self.store.save(account)


def build_history(start: datetime) -> list[ProjectedEvent]:
    events = [
        ProjectedEvent(
            event_id="acc-1-1",
            event_type="AccountOpened",
            aggregate_id="acc-1",
            aggregate_version=1,
            occurred_at=start,
            payload={"owner": "Alice"},
        )
    ]
    for version in range(2, 23):
        events.append(
            ProjectedEvent(
                event_id=f"acc-1-{version}",
                event_type="MoneyDeposited" if version % 3 else "MoneyWithdrawn",
                aggregate_id="acc-1",
                aggregate_version=version,
                occurred_at=start + timedelta(seconds=version),
                payload={"amount": 10},
            )
        )
    # An event for an account that was never opened; the rebuild counts it and moves on.
    events.append(
        ProjectedEvent(
            event_id="ghost-1",
            event_type="MoneyDeposited",
            aggregate_id="ghost",
            aggregate_version=1,
            occurred_at=start,
            payload={"amount": 1},
        )
    )
    return events


async def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    projection = AccountBalanceProjection(InMemoryReadModelStore())
    manager = ProjectionRebuildManager()
    manager.register(projection)

    history = build_history(datetime.now(timezone.utc) - timedelta(minutes=5))
    result = await manager.rebuild("AccountBalance", history)
    print(f"Rebuild: {result.model_dump()}")
    print(f"Account after rebuild: {await projection.store.find_by_id('acc-1')}")

    # Snapshot the aggregate state every tenth version while replaying.
    snapshots = InMemorySnapshotStore[Dict[str, int]]()
    balance = 0
    for event in history:
        if event.aggregate_id != "acc-1" or event.event_type == "AccountOpened":
            continue
        balance += event.payload["amount"] if event.event_type == "MoneyDeposited" else -event.payload["amount"]
        if should_take_snapshot(event.aggregate_version):
            await snapshots.save(
                Snapshot(
                    aggregate_id="acc-1",
                    version=event.aggregate_version,
                    state={"balance": balance},
                    taken_at=datetime.now(timezone.utc),
                )
            )
    latest = await snapshots.find_latest("acc-1")
    print(f"Snapshots taken: {await snapshots.size()}, latest: v{latest.version} {latest.state}")

    # Live traffic: one fresh event and one that arrives late.
    monitor = ConsistencyMonitor()
    live = LiveProjector(projection, monitor)
    now = datetime.now(timezone.utc)
    await live.apply(
        ProjectedEvent(
            event_id="acc-1-23",
            event_type="MoneyDeposited",
            aggregate_id="acc-1",
            aggregate_version=23,
            occurred_at=now,
            payload={"amount": 5},
        )
    )
    await live.apply(
        ProjectedEvent(
            event_id="acc-1-24",
            event_type="MoneyWithdrawn",
            aggregate_id="acc-1",
            aggregate_version=24,
            occurred_at=now - timedelta(seconds=8),
            payload={"amount": 5},
        )
    )
    report = monitor.get_report()
    print(f"Consistency report: {report.model_dump()}")


if __name__ == "__main__":
    asyncio.run(main())
