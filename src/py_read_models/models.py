"""
This module defines the core data models for the read model system using Pydantic.
Events arrive as `ProjectedEvent` values, projections materialize rows derived from
`ReadModel`, and snapshots capture aggregate state at a given version.
"""
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Any, Dict, Generic, List, TypeVar

S = TypeVar("S")


class ProjectedEvent(BaseModel):
    """An immutable fact to be applied to a read model."""

    model_config = ConfigDict(frozen=True)

    event_id: str
    event_type: str
    aggregate_id: str
    aggregate_version: int  # Per-aggregate sequence number
    occurred_at: datetime  # When the domain fact happened, not when it was processed
    payload: Any = None


class ReadModel(BaseModel):
    """
    Base shape for a materialized row. Concrete read models subclass this and
    add whatever fields they need; `version` mirrors the last applied
    `aggregate_version`.
    """

    id: str
    version: int = 0
    updated_at: datetime | None = None


class Snapshot(BaseModel, Generic[S]):
    aggregate_id: str
    version: int
    state: S
    taken_at: datetime


class RebuildResult(BaseModel):
    projection_name: str
    events_processed: int
    errors: int
    duration_ms: float
    failed_event_ids: List[str] = Field(default_factory=list)

    @property
    def error_rate(self) -> float:
        if self.events_processed == 0:
            return 0.0
        return self.errors / self.events_processed


class ProjectionConsistencyStats(BaseModel):
    average_lag_ms: float
    max_lag_ms: float
    sample_count: int
    is_healthy: bool


class ConsistencyReport(BaseModel):
    projections: Dict[str, ProjectionConsistencyStats]
    overall_healthy: bool
