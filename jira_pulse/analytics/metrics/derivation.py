"""Per-item metric derivation from the status/label transition log (pure functions)."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from jira_pulse.core.config import DEFECT_LABELS
from jira_pulse.core.models import IssueMetrics, TransitionEvent, WorkItem
from jira_pulse.core.status import (
    DONE,
    IN_PROGRESS,
    REOPEN_CATEGORIES,
    REVIEW,
    normalize_workflow_status,
)

SECONDS_PER_DAY = 86400.0
SECONDS_PER_HOUR = 3600.0


def _days(start: datetime, end: datetime) -> float:
    return max(0.0, (end - start).total_seconds() / SECONDS_PER_DAY)


def _label_set(value: str | None) -> set[str]:
    if not value:
        return set()
    return {part.strip().lower() for part in value.replace(",", " ").split() if part.strip()}


def labels_add_defect(event: TransitionEvent, vocabulary: Iterable[str] = DEFECT_LABELS) -> bool:
    """True when a label change adds a label matching the defect vocabulary."""
    added = _label_set(event.to_value) - _label_set(event.from_value)
    return any(term in label for label in added for term in vocabulary)


def _status_events(transitions: Sequence[TransitionEvent]) -> list[tuple[datetime, str, str]]:
    return [
        (t.timestamp, normalize_workflow_status(t.from_value), normalize_workflow_status(t.to_value))
        for t in transitions
        if t.field == "status" and t.timestamp is not None
    ]


def _sum_intervals(events: list[tuple[datetime, str, str]], category: str) -> float:
    """Total hours spent in ``category``; an interval never left contributes nothing."""
    total = 0.0
    opened: datetime | None = None
    for ts, _, to_cat in events:
        if to_cat == category:
            if opened is None:
                opened = ts
        elif opened is not None:
            total += (ts - opened).total_seconds() / SECONDS_PER_HOUR
            opened = None
    return total


def derive_metrics(
    item: WorkItem,
    transitions: Sequence[TransitionEvent],
    defect_labels: Iterable[str] = DEFECT_LABELS,
) -> IssueMetrics:
    """Derive cycle/lead times and quality flags for one item.

    Parameters
    ----------
    item : WorkItem
        The item the transitions belong to.
    transitions : Sequence[TransitionEvent]
        Full change log, any order.
    defect_labels : Iterable[str]
        Label fragments that mark the item as a defect.

    Returns
    -------
    IssueMetrics
        Zeroed metrics when the log is empty; cycle and lead time stay 0 when
        the item never reached a done status.
    """
    if not transitions:
        return IssueMetrics()
    ordered = sorted((t for t in transitions if t.timestamp is not None), key=lambda t: t.timestamp)
    events = _status_events(ordered)
    vocabulary = [v.lower() for v in defect_labels]

    first_progress: datetime | None = None
    progress_done: datetime | None = None
    first_done: datetime | None = None
    seen_done = False
    reopened = False
    revisions = 0
    for ts, from_cat, to_cat in events:
        if to_cat == IN_PROGRESS and first_progress is None:
            first_progress = ts
        if to_cat == DONE:
            if first_done is None:
                first_done = ts
            if first_progress is not None and progress_done is None:
                progress_done = ts
            seen_done = True
        elif seen_done and to_cat in REOPEN_CATEGORIES:
            reopened = True
        if from_cat == REVIEW and to_cat == IN_PROGRESS:
            revisions += 1

    cycle = _days(first_progress, progress_done) if first_progress and progress_done else 0.0
    lead = 0.0
    if first_done is not None:
        origin = ordered[0].timestamp
        if item.created is not None and item.created < origin:
            origin = item.created
        lead = _days(origin, first_done)

    defect = any(t.field == "labels" and labels_add_defect(t, vocabulary) for t in ordered)
    return IssueMetrics(
        cycle_time_days=cycle,
        lead_time_days=lead,
        in_progress_hours=_sum_intervals(events, IN_PROGRESS),
        review_hours=_sum_intervals(events, REVIEW),
        reopened=reopened,
        defect=defect,
        revisions=revisions,
    )
