"""
This module defines the abstract protocols for read model storage, snapshot
storage and projections.

Projections and the rebuild manager only ever talk to these `Protocol`-based
ports, so a projection written against the in-memory store runs unchanged
against the SQLite adaptor or any other backend that honours the contract.
Every read accessor must hand back an independent copy of the stored value.
"""
from typing import List, Protocol, TypeVar

from pydantic import BaseModel

from .models import ProjectedEvent, Snapshot

T = TypeVar("T", bound=BaseModel)
S = TypeVar("S")


class ReadModelStore(Protocol[T]):
    """
    Keyed persistence of materialized rows. `save` is an upsert keyed by the
    model's identity field; deleting an absent key is a no-op.
    """

    async def save(self, model: T) -> None:
        ...

    async def find_by_id(self, id: str) -> T | None:
        ...

    async def find_all(self) -> List[T]:
        ...

    async def delete(self, id: str) -> None:
        ...

    async def clear(self) -> None:
        ...

    async def size(self) -> int:
        ...


class SnapshotStore(Protocol[S]):
    """
    Versioned point-in-time captures of aggregate state. Several snapshots may
    exist per aggregate; `find_latest` returns the one with the highest version.
    """

    async def save(self, snapshot: Snapshot[S]) -> None:
        ...

    async def find_latest(self, aggregate_id: str) -> Snapshot[S] | None:
        ...

    async def find_by_version(
        self, aggregate_id: str, version: int
    ) -> Snapshot[S] | None:
        ...

    async def delete(self, aggregate_id: str) -> None:
        ...

    async def size(self) -> int:
        ...


class Projection(Protocol):
    """
    Folds events into read model mutations. `name` is the registry key used by
    the rebuild manager and must be stable.
    """

    name: str

    async def project(self, event: ProjectedEvent) -> None:
        ...

    async def reset(self) -> None:
        ...
