from datetime import datetime, timezone
from typing import Any, Dict, List

from py_read_models import BaseProjection, ProjectedEvent, ReadModel, Snapshot


class UserReadModel(ReadModel):
    name: str
    email: str
    tags: List[str] = []


class UserProjection(BaseProjection[UserReadModel]):
    name = "UserProjection"

    def __init__(self, store):
        super().__init__(store)
        self.projected: List[ProjectedEvent] = []

    async def project(self, event: ProjectedEvent) -> None:
        self.projected.append(event)
        payload = event.payload or {}
        if event.event_type == "UserCreated":
            await self.store.save(
                UserReadModel(
                    id=event.aggregate_id,
                    name=payload["name"],
                    email=payload["email"],
                    version=event.aggregate_version,
                    updated_at=event.occurred_at,
                )
            )
        elif event.event_type == "UserNameUpdated":
            existing = await self.store.find_by_id(event.aggregate_id)
            if existing is not None:
                await self.store.save(
                    existing.model_copy(
                        update={
                            "name": payload["name"],
                            "version": event.aggregate_version,
                            "updated_at": event.occurred_at,
                        }
                    )
                )
        elif event.event_type == "UserDeleted":
            await self.store.delete(event.aggregate_id)


class FailingProjection:
    """Satisfies the Projection protocol without a store; fails on every event."""

    name = "FailingProjection"

    def __init__(self):
        self.reset_calls = 0

    async def project(self, event: ProjectedEvent) -> None:
        raise RuntimeError(f"boom on {event.event_id}")

    async def reset(self) -> None:
        self.reset_calls += 1


def make_event(**overrides: Any) -> ProjectedEvent:
    fields: Dict[str, Any] = {
        "event_id": "evt-1",
        "event_type": "UserCreated",
        "aggregate_id": "user-1",
        "aggregate_version": 1,
        "occurred_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "payload": {"name": "Alice", "email": "alice@example.com"},
    }
    fields.update(overrides)
    return ProjectedEvent(**fields)


def make_user_model(**overrides: Any) -> UserReadModel:
    fields: Dict[str, Any] = {
        "id": "user-1",
        "name": "Alice",
        "email": "alice@example.com",
        "version": 1,
        "updated_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return UserReadModel(**fields)


def make_snapshot(**overrides: Any) -> Snapshot:
    fields: Dict[str, Any] = {
        "aggregate_id": "agg-1",
        "version": 10,
        "state": {"count": 5},
        "taken_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Snapshot(**fields)


def user_history(aggregate_id: str = "user-1", updates: int = 3) -> List[ProjectedEvent]:
    events = [make_event(event_id=f"{aggregate_id}-1", aggregate_id=aggregate_id)]
    for version in range(2, updates + 2):
        events.append(
            make_event(
                event_id=f"{aggregate_id}-{version}",
                event_type="UserNameUpdated",
                aggregate_id=aggregate_id,
                aggregate_version=version,
                payload={"name": f"Alice v{version}"},
            )
        )
    return events
