"""
This module exports the read model building blocks: projections, stores,
the rebuild manager, snapshot cadence and the consistency monitor.
"""
from .models import (
    ProjectedEvent,
    ReadModel,
    Snapshot,
    RebuildResult,
    ProjectionConsistencyStats,
    ConsistencyReport,
)
from .protocols import Projection, ReadModelStore, SnapshotStore
from .memory import InMemoryReadModelStore, InMemorySnapshotStore
from .projection import BaseProjection
from .rebuild import ProjectionRebuildManager, ProjectionNotRegisteredError
from .snapshot import DEFAULT_SNAPSHOT_INTERVAL, should_take_snapshot
from .consistency import ConsistencyMonitor
from .live import LiveProjector
from .adaptors.sqlite import sqlite_store_factory

__all__ = [
    "ProjectedEvent",
    "ReadModel",
    "Snapshot",
    "RebuildResult",
    "ProjectionConsistencyStats",
    "ConsistencyReport",
    "Projection",
    "ReadModelStore",
    "SnapshotStore",
    "InMemoryReadModelStore",
    "InMemorySnapshotStore",
    "BaseProjection",
    "ProjectionRebuildManager",
    "ProjectionNotRegisteredError",
    "DEFAULT_SNAPSHOT_INTERVAL",
    "should_take_snapshot",
    "ConsistencyMonitor",
    "LiveProjector",
    "sqlite_store_factory",
]
