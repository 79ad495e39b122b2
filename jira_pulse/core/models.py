"""Domain data models for work items, transitions, and derived metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class WorkItem:
    key: str
    issuetype: str | None
    status: str | None
    assignee_id: str | None
    assignee: str | None
    created: datetime | None
    updated: datetime | None
    resolved: datetime | None
    story_points: float | None = None
    components: frozenset[str] = frozenset()
    labels: tuple[str, ...] = ()
    project: str | None = None
    summary: str | None = None


@dataclass(frozen=True, slots=True)
class TransitionEvent:
    timestamp: datetime
    actor: str | None
    field: str
    from_value: str | None
    to_value: str | None


@dataclass(slots=True)
class IssueMetrics:
    # Zero cycle time means "unknown", never "instant"
    cycle_time_days: float = 0.0
    lead_time_days: float = 0.0
    in_progress_hours: float = 0.0
    review_hours: float = 0.0
    reopened: bool = False
    defect: bool = False
    revisions: int = 0


@dataclass(slots=True)
class AnalyzedItem:
    item: WorkItem
    metrics: IssueMetrics = field(default_factory=IssueMetrics)
    transitions: tuple[TransitionEvent, ...] = ()


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    payload: T
    computed_at: datetime
    ttl_hours: float
    version: str
