"""
In-memory implementations of the `ReadModelStore` and `SnapshotStore` ports,
for tests and local development.

Both stores deep-copy on the way in and on the way out, so neither the caller
that saved a value nor the caller that read one can reach stored state.
"""
from typing import Dict, List, TypeVar

from pydantic import BaseModel

from .models import Snapshot
from .protocols import ReadModelStore, SnapshotStore

T = TypeVar("T", bound=BaseModel)
S = TypeVar("S")


class InMemoryReadModelStore(ReadModelStore[T]):
    def __init__(self, id_field: str = "id"):
        self.id_field = id_field
        self._rows: Dict[str, T] = {}

    async def save(self, model: T) -> None:
        key = getattr(model, self.id_field)
        self._rows[str(key)] = model.model_copy(deep=True)

    async def find_by_id(self, id: str) -> T | None:
        model = self._rows.get(str(id))
        return model.model_copy(deep=True) if model is not None else None

    async def find_all(self) -> List[T]:
        return [model.model_copy(deep=True) for model in self._rows.values()]

    async def delete(self, id: str) -> None:
        self._rows.pop(str(id), None)

    async def clear(self) -> None:
        self._rows.clear()

    async def size(self) -> int:
        return len(self._rows)


class InMemorySnapshotStore(SnapshotStore[S]):
    """Keeps every snapshot per aggregate, indexed by version."""

    def __init__(self):
        self._snapshots: Dict[str, Dict[int, Snapshot[S]]] = {}

    async def save(self, snapshot: Snapshot[S]) -> None:
        by_version = self._snapshots.setdefault(snapshot.aggregate_id, {})
        by_version[snapshot.version] = snapshot.model_copy(deep=True)

    async def find_latest(self, aggregate_id: str) -> Snapshot[S] | None:
        by_version = self._snapshots.get(aggregate_id)
        if not by_version:
            return None
        return by_version[max(by_version)].model_copy(deep=True)

    async def find_by_version(
        self, aggregate_id: str, version: int
    ) -> Snapshot[S] | None:
        snapshot = self._snapshots.get(aggregate_id, {}).get(version)
        return snapshot.model_copy(deep=True) if snapshot is not None else None

    async def delete(self, aggregate_id: str) -> None:
        self._snapshots.pop(aggregate_id, None)

    async def size(self) -> int:
        """Total number of snapshots across all aggregates."""
        return sum(len(by_version) for by_version in self._snapshots.values())
