"""Quality scoring and the tabular view every analyzer works from."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from jira_pulse.core.models import AnalyzedItem, IssueMetrics
from jira_pulse.core.status import DONE, normalize_workflow_status

MAX_QUALITY = 10.0

FRAME_COLUMNS = [
    "key",
    "issuetype",
    "status",
    "assignee_id",
    "assignee",
    "project",
    "components",
    "story_points",
    "created",
    "updated",
    "resolved",
    "is_done",
    "cycle_time",
    "lead_time",
    "reopened",
    "defect",
    "revisions",
    "quality",
]


def quality_score(metrics: IssueMetrics) -> float:
    """``10 - 3*reopened - 3*defect - 0.5*revisions``, floored at 0."""
    score = MAX_QUALITY
    if metrics.reopened:
        score -= 3.0
    if metrics.defect:
        score -= 3.0
    score -= 0.5 * metrics.revisions
    return max(0.0, score)


def items_to_dataframe(items: Iterable[AnalyzedItem]) -> pd.DataFrame:
    rows = []
    for a in items:
        i, m = a.item, a.metrics
        rows.append(
            {
                "key": i.key,
                "issuetype": i.issuetype or "Unknown",
                "status": i.status,
                "assignee_id": i.assignee_id,
                "assignee": i.assignee,
                "project": i.project,
                "components": sorted(i.components),
                "story_points": i.story_points if i.story_points is not None else 0.0,
                "created": i.created,
                "updated": i.updated,
                "resolved": i.resolved,
                "is_done": i.resolved is not None or normalize_workflow_status(i.status) == DONE,
                "cycle_time": m.cycle_time_days,
                "lead_time": m.lead_time_days,
                "reopened": m.reopened,
                "defect": m.defect,
                "revisions": m.revisions,
                "quality": quality_score(m),
            }
        )
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    for col in ("created", "updated", "resolved"):
        df[col] = pd.to_datetime(df[col], utc=True, errors="coerce")
    return df
