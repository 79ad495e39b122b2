"""Analyzer result types.

Every analyzer returns either its own result type or ``InsufficientData``.
All of them share the ``AnalysisResult`` envelope so the recommendation
aggregator can merge heterogeneous outputs generically.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Confidence = Literal["high", "medium", "low"]


def confidence_for(samples: int, high: int = 30, medium: int = 10, *, inclusive: bool = True) -> Confidence:
    """Map a sample count to a confidence tier.

    Parameters
    ----------
    samples : int
        Number of items backing the analysis.
    high, medium : int
        Tier thresholds.
    inclusive : bool
        When False the count must strictly exceed the threshold.

    Returns
    -------
    str
        ``"high"``, ``"medium"`` or ``"low"``; monotonic in ``samples``.
    """
    if inclusive:
        if samples >= high:
            return "high"
        if samples >= medium:
            return "medium"
        return "low"
    if samples > high:
        return "high"
    if samples > medium:
        return "medium"
    return "low"


@dataclass(slots=True, kw_only=True)
class AnalysisResult:
    subject_id: str
    confidence: Confidence
    data_points: int
    last_updated: datetime
    recommendations: list[str] = field(default_factory=list)


@dataclass(slots=True, kw_only=True)
class InsufficientData(AnalysisResult):
    analyzer: str
    required: int
    reason: Literal["insufficient_data", "timeout"] = "insufficient_data"


def insufficient_data(
    analyzer: str,
    subject_id: str,
    samples: int,
    required: int,
    now: datetime,
    *,
    reason: Literal["insufficient_data", "timeout"] = "insufficient_data",
) -> InsufficientData:
    """Build the low-confidence variant with an explanatory message."""
    if reason == "timeout":
        message = f"The {analyzer} analysis timed out and no cached result is available. Try again shortly."
    else:
        message = (
            f"Not enough history for {analyzer} analysis: found {samples} items, "
            f"need at least {required}. Keep working and check back later."
        )
    return InsufficientData(
        subject_id=subject_id,
        confidence="low",
        data_points=samples,
        last_updated=now,
        recommendations=[message],
        analyzer=analyzer,
        required=required,
        reason=reason,
    )


# ------------------ Timing ------------------
@dataclass(slots=True)
class HourStat:
    hour: int
    volume: int
    quality: float


@dataclass(slots=True)
class PeakWindow:
    start_hour: int
    end_hour: int
    quality_multiplier: float


@dataclass(slots=True)
class DangerZone:
    start_hour: int
    end_hour: int
    revert_multiplier: float

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour < self.end_hour


@dataclass(slots=True)
class DayPattern:
    day: str
    quality: float
    speed: float
    volume: int


@dataclass(slots=True, kw_only=True)
class TimingResult(AnalysisResult):
    time_range: str
    peak: PeakWindow
    danger: DangerZone | None
    hourly: list[HourStat]
    weekdays: list[DayPattern]
    best_day: str | None = None


# ------------------ Load ------------------
@dataclass(slots=True)
class LoadLevel:
    load: int
    items: int
    avg_cycle_time: float
    defect_rate: float
    completion_rate: float
    score: float


@dataclass(slots=True, kw_only=True)
class LoadResult(AnalysisResult):
    current_load: int
    current_status: str
    optimal_min: int
    optimal_max: int
    avg_load: float
    curve: list[LoadLevel]


# ------------------ Strengths ------------------
@dataclass(slots=True)
class GroupStrength:
    name: str
    kind: str  # "type" or "component"
    count: int
    avg_cycle_time: float
    team_avg_cycle_time: float
    delta_pct: float
    quality: float
    expertise: str | None = None


@dataclass(slots=True, kw_only=True)
class StrengthResult(AnalysisResult):
    by_type: list[GroupStrength]
    by_component: list[GroupStrength]
    strengths: list[str]
    weaknesses: list[str]
    compared_to_team: bool


# ------------------ Trends ------------------
@dataclass(slots=True)
class TrendPoint:
    month: str
    value: float
    trend: str


@dataclass(slots=True)
class SkillGrowth:
    issuetype: str
    first_half: int
    second_half: int
    growth_pct: float
    trend: str


@dataclass(slots=True)
class PeriodMetrics:
    items_completed: int = 0
    story_points: float = 0.0
    avg_cycle_time: float = 0.0
    quality: float = 0.0
    defect_rate: float = 0.0


@dataclass(slots=True)
class PeriodComparison:
    first: PeriodMetrics
    second: PeriodMetrics
    deltas: dict[str, float]


@dataclass(slots=True, kw_only=True)
class TrendResult(AnalysisResult):
    months: int
    velocity: list[TrendPoint]
    quality: list[TrendPoint]
    skills: list[SkillGrowth]
    periods: PeriodComparison


# ------------------ Burnout ------------------
@dataclass(slots=True)
class RiskFactor:
    name: str
    points: int
    detail: str


@dataclass(slots=True)
class WeekTrend:
    week_start: datetime
    created: int
    completed: int
    overload: float
    danger_hour_completions: int


@dataclass(slots=True, kw_only=True)
class BurnoutResult(AnalysisResult):
    score: int
    risk_level: str
    factors: list[RiskFactor]
    weekly: list[WeekTrend]
    recovery_plan: list[str] = field(default_factory=list)


# ------------------ Collaboration ------------------
@dataclass(slots=True)
class TeammateChemistry:
    teammate_id: str
    name: str
    shared_items: int
    shared_avg_cycle_time: float
    speed_multiplier: float
    score: int
    rating: str


@dataclass(slots=True)
class NetworkEdge:
    source: str
    target: str
    weight: int
    score: int


@dataclass(slots=True)
class TeamMetrics:
    best_pair: str | None
    avg_collab_cycle_time: float
    total_collaborations: int


@dataclass(slots=True, kw_only=True)
class CollaborationResult(AnalysisResult):
    solo_avg_cycle_time: float
    teammates: list[TeammateChemistry]
    network: list[NetworkEdge]
    team_metrics: TeamMetrics


# ------------------ Prediction ------------------
@dataclass(slots=True)
class RiskItem:
    key: str
    position: int
    estimated_days: float
    overshoot_days: float
    severity: str


@dataclass(slots=True)
class Scenario:
    label: str
    delta: int
    items: int
    probability: float
    advice: str


@dataclass(slots=True, kw_only=True)
class PredictionResult(AnalysisResult):
    active_items: int
    days_remaining: float
    trials: int
    completion_probability: float
    expected_completed: float
    interval_low: int
    interval_high: int
    avg_cycle_time: float
    current_velocity: int
    at_risk: list[RiskItem]
    scenarios: list[Scenario]
