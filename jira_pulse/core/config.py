"""Central configuration, constants, and analyzer tuning knobs."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# Jira Connection Settings
# =============================================================================
TIMEZONE = "UTC"  # Hour-of-day and weekday bucketing happen in this zone

# Canonical field list for item fetches (changelog is fetched per item)
JIRA_FETCH_BASE_FIELDS: Sequence[str] = (
    "summary",
    "issuetype",
    "status",
    "assignee",
    "created",
    "updated",
    "resolutiondate",
    "customfield_10016",  # Story points (may vary per site)
    "components",
    "labels",
    "project",
)
STORY_POINTS_FIELD = "customfield_10016"

# =============================================================================
# Workflow Status Configuration
# =============================================================================
# Map raw status strings to workflow categories.
# Keys should be lowercase for case-insensitive matching
STATUS_ALIASES: dict[str, str] = {
    # Open/backlog statuses
    "open": "open",
    "to do": "open",
    "todo": "open",
    "new": "open",
    "backlog": "open",
    "reopened": "open",
    "selected for development": "open",
    # In Progress variants
    "in progress": "in_progress",
    "inprogress": "in_progress",
    "in-progress": "in_progress",
    "in development": "in_progress",
    "working": "in_progress",
    # Review variants
    "in review": "review",
    "code review": "review",
    "review": "review",
    "testing": "review",
    "in qa": "review",
    # Done variants
    "done": "done",
    "closed": "done",
    "resolved": "done",
    "complete": "done",
    "completed": "done",
}

# Labels that mark an item as having shipped a defect
DEFECT_LABELS: frozenset[str] = frozenset({"bug", "defect", "regression", "hotfix"})

# Statuses that take an item out of the active set (JQL `status NOT IN (...)`)
CLOSED_STATUS_NAMES: Sequence[str] = ("Done", "Closed", "Resolved")

# =============================================================================
# Cache Configuration
# =============================================================================
CACHE_VERSION = "1.2.0"  # Bump to invalidate every stored analysis
DEFAULT_TTL_HOURS = 24.0

NAMESPACE_TTL_HOURS: dict[str, float] = {
    "timing": 24.0,
    "load": 24.0,
    "strengths": 24.0,
    "trends": 24.0,
    "burnout": 6.0,
    "collaboration": 24.0,
    "predictions": 1.0,
}
CACHE_NAMESPACES: Sequence[str] = tuple(NAMESPACE_TTL_HOURS)

# =============================================================================
# Time windows
# =============================================================================
TIME_RANGES: dict[str, int] = {
    "1week": 7,
    "week": 7,
    "2weeks": 14,
    "1month": 30,
    "month": 30,
    "3months": 90,
    "6months": 180,
    "1year": 365,
    "year": 365,
}
DEFAULT_TIME_RANGE = "6months"
HISTORY_DAYS = 180
BURNOUT_HISTORY_DAYS = 84  # 12 weeks
PREDICTION_HISTORY_DAYS = 90

WEEKDAY_NAMES: Sequence[str] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def resolve_time_range(name: str | None) -> int:
    """Translate a named lookback (``"3months"``) into a day count.

    Unknown names fall back to the default six-month window.
    """
    if not name:
        return TIME_RANGES[DEFAULT_TIME_RANGE]
    return TIME_RANGES.get(str(name).strip().lower(), TIME_RANGES[DEFAULT_TIME_RANGE])


@dataclass(slots=True)
class AnalyzerSettings:
    # Minimum sample counts before an analyzer reports anything
    min_items_timing: int = 10
    min_items_load: int = 10
    min_items_strengths: int = 10
    min_items_trends: int = 10
    min_items_burnout: int = 5
    min_items_collaboration: int = 10
    min_items_prediction: int = 5

    # Timing
    min_hour_volume: int = 5
    peak_hours: int = 3
    danger_hours: int = 2
    danger_ratio: float = 0.8

    # Load
    optimal_load_min: int = 5
    optimal_load_max: int = 9
    over_load_max: int = 12

    # Strengths
    min_group_items: int = 3
    min_team_sample: int = 5  # team baseline must exceed this

    # Burnout
    burnout_weeks: int = 8
    overload_week_threshold: float = 50.0
    crunch_week_completions: int = 8

    # Sprint prediction
    monte_carlo_trials: int = 1000
    interval_low_pct: float = 10.0
    interval_high_pct: float = 90.0
    sprint_days_remaining: float = 10.0

    # Pipeline
    fetch_max_workers: int = 8
    fetch_min_parallel: int = 4  # below this, stay sequential to reduce overhead
    analysis_max_workers: int = 7
    request_timeout_seconds: float = 20.0  # per HTTP call to the issue tracker


SETTINGS = AnalyzerSettings()


@dataclass(slots=True)
class JiraSettings:
    server: str
    email: str
    token: str

    @classmethod
    def from_env(cls) -> JiraSettings:
        """Read Jira credentials from ``JIRA_SERVER``/``JIRA_EMAIL``/``JIRA_API_TOKEN``."""
        server = os.environ.get("JIRA_SERVER", "").strip()
        email = os.environ.get("JIRA_EMAIL", "").strip()
        token = (os.environ.get("JIRA_API_TOKEN") or os.environ.get("JIRA_TOKEN") or "").strip()
        missing = [
            name
            for name, value in (("JIRA_SERVER", server), ("JIRA_EMAIL", email), ("JIRA_API_TOKEN", token))
            if not value
        ]
        if missing:
            raise ValueError(f"Missing Jira settings: {', '.join(missing)}")
        return cls(server=server, email=email, token=token)
