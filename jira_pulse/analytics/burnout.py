"""Burnout risk scoring over the last eight weeks (pure functions)."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

import pandas as pd
import pytz

from jira_pulse.analytics.load import CRITICAL, OVER, load_zone
from jira_pulse.analytics.metrics.quality import items_to_dataframe
from jira_pulse.analytics.timing import event_frame, find_danger_zone, hourly_quality
from jira_pulse.core.config import SETTINGS, TIMEZONE, AnalyzerSettings
from jira_pulse.core.models import AnalyzedItem
from jira_pulse.core.results import (
    BurnoutResult,
    DangerZone,
    InsufficientData,
    RiskFactor,
    WeekTrend,
    confidence_for,
    insufficient_data,
)

HEALTHY = "healthy"
WARNING = "warning"
HIGH = "high"
CRITICAL_RISK = "critical"

MAX_SCORE = 100


def risk_level_for(score: float) -> str:
    """healthy <30, warning 30-49, high 50-69, critical 70+."""
    if score >= 70:
        return CRITICAL_RISK
    if score >= 50:
        return HIGH
    if score >= 30:
        return WARNING
    return HEALTHY


def weekly_windows(now: datetime, weeks: int) -> list[tuple[datetime, datetime]]:
    """Consecutive seven-day windows ending at ``now``, oldest first."""
    week = timedelta(days=7)
    return [(now - week * (weeks - i), now - week * (weeks - i - 1)) for i in range(weeks)]


def weekly_trends(
    df: pd.DataFrame,
    now: datetime,
    danger: DangerZone | None,
    settings: AnalyzerSettings = SETTINGS,
    tz: str = TIMEZONE,
) -> list[WeekTrend]:
    created = pd.to_datetime(df["created"], utc=True, errors="coerce")
    resolved = pd.to_datetime(df["resolved"], utc=True, errors="coerce")
    resolved_hour = resolved.dt.tz_convert(pytz.timezone(tz)).dt.hour
    out = []
    for start, end in weekly_windows(now, settings.burnout_weeks):
        start_ts, end_ts = pd.Timestamp(start), pd.Timestamp(end)
        created_n = int(((created >= start_ts) & (created < end_ts)).sum())
        done_mask = (resolved >= start_ts) & (resolved < end_ts)
        completed_n = int(done_mask.sum())
        net = created_n - completed_n
        overload = min(100.0, net / settings.optimal_load_max * 100.0) if net > 0 else 0.0
        danger_n = 0
        if danger is not None:
            hours = resolved_hour[done_mask]
            danger_n = int(((hours >= danger.start_hour) & (hours < danger.end_hour)).sum())
        out.append(
            WeekTrend(
                week_start=start,
                created=created_n,
                completed=completed_n,
                overload=overload,
                danger_hour_completions=danger_n,
            )
        )
    return out


def _overload_factor(weekly: Sequence[WeekTrend], settings: AnalyzerSettings) -> RiskFactor | None:
    weeks = sum(1 for w in weekly if w.overload > settings.overload_week_threshold)
    if weeks >= 6:
        points = 40
    elif weeks >= 4:
        points = 30
    elif weeks >= 2:
        points = 20
    else:
        return None
    detail = f"{weeks} of the last {len(weekly)} weeks added more work than you closed"
    return RiskFactor("sustained_overload", points, detail)


def _load_factor(active_count: int, settings: AnalyzerSettings) -> RiskFactor | None:
    zone = load_zone(active_count, settings)
    if zone == CRITICAL:
        return RiskFactor("current_load", 25, f"{active_count} active items is a critical load")
    if zone == OVER:
        return RiskFactor("current_load", 15, f"{active_count} active items is above the optimal range")
    return None


def _velocity_factor(weekly: Sequence[WeekTrend]) -> RiskFactor | None:
    half = len(weekly) // 2
    if half == 0:
        return None
    early = sum(w.completed for w in weekly[:half]) / half
    recent = sum(w.completed for w in weekly[half:]) / (len(weekly) - half)
    if early <= 0:
        return None
    drop = (early - recent) / early
    if drop > 0.4:
        points = 30
    elif drop > 0.3:
        points = 25
    elif drop > 0.2:
        points = 15
    else:
        return None
    return RiskFactor("declining_velocity", points, f"weekly completions fell {drop * 100:.0f}%")


def _danger_factor(danger: DangerZone | None, now: datetime, tz: str) -> RiskFactor | None:
    if danger is None:
        return None
    hour = now.astimezone(pytz.timezone(tz)).hour
    if not danger.contains(hour):
        return None
    return RiskFactor("danger_hours", 10, f"working now ({hour}:00) falls in your low-quality hours")


def _crunch_factor(weekly: Sequence[WeekTrend], settings: AnalyzerSettings) -> RiskFactor | None:
    weeks = sum(1 for w in weekly if w.completed >= settings.crunch_week_completions)
    if weeks < 3:
        return None
    threshold = settings.crunch_week_completions
    return RiskFactor("crunch_weeks", 15, f"{weeks} weeks with {threshold}+ completions")


FACTOR_ADVICE: dict[str, str] = {
    "sustained_overload": "Incoming work has outpaced completions for weeks; negotiate scope first.",
    "current_load": "Reduce work in progress: finish or hand off items before starting new ones.",
    "declining_velocity": "Your pace is slowing; look for blockers or fatigue rather than pushing harder.",
    "danger_hours": "You're working in your low-quality hours; wrap up and pick this up tomorrow.",
    "crunch_weeks": "Several crunch weeks in a row; plan a lighter week to recover.",
}


def recovery_plan(
    level: str, factors: Sequence[RiskFactor], active_count: int, settings: AnalyzerSettings = SETTINGS
) -> list[str]:
    if level not in {HIGH, CRITICAL_RISK}:
        return []
    plan = ["Take nothing new for the next two days; focus on closing in-flight work."]
    names = {f.name for f in factors}
    if "current_load" in names:
        excess = max(0, active_count - settings.optimal_load_max)
        plan.append(f"Hand off or defer {excess} items to get back under {settings.optimal_load_max}.")
    if "danger_hours" in names or "crunch_weeks" in names:
        plan.append("Keep to regular hours this week and avoid evening work.")
    plan.append("Book a recovery day within the next week and discuss workload with your lead.")
    if level == CRITICAL_RISK:
        plan.append("Escalate now: critical burnout risk needs a scope change, not extra effort.")
    return plan


def analyze_burnout(
    subject_id: str,
    items: Sequence[AnalyzedItem],
    active_count: int,
    *,
    settings: AnalyzerSettings = SETTINGS,
    tz: str = TIMEZONE,
    now: datetime | None = None,
) -> BurnoutResult | InsufficientData:
    """Score burnout risk from five independent factors, capped at 100.

    The danger zone is recomputed from the same items rather than read from a
    timing result, so the score does not depend on another analysis' cache.
    """
    now = now or datetime.now(UTC)
    if len(items) < settings.min_items_burnout:
        return insufficient_data("burnout", subject_id, len(items), settings.min_items_burnout, now)
    df = items_to_dataframe(items)
    danger = find_danger_zone(hourly_quality(event_frame(df, tz)), settings)
    weekly = weekly_trends(df, now, danger, settings, tz)

    candidates = (
        _overload_factor(weekly, settings),
        _load_factor(active_count, settings),
        _velocity_factor(weekly),
        _danger_factor(danger, now, tz),
        _crunch_factor(weekly, settings),
    )
    factors = [f for f in candidates if f is not None]
    score = min(MAX_SCORE, sum(f.points for f in factors))
    level = risk_level_for(score)

    recs = [FACTOR_ADVICE[f.name] for f in sorted(factors, key=lambda f: -f.points)]
    if not recs:
        recs.append("No burnout signals right now; keep your current rhythm.")
    return BurnoutResult(
        subject_id=subject_id,
        confidence=confidence_for(len(items), high=30, medium=15, inclusive=False),
        data_points=len(items),
        last_updated=now,
        recommendations=recs,
        score=score,
        risk_level=level,
        factors=factors,
        weekly=weekly,
        recovery_plan=recovery_plan(level, factors, active_count, settings),
    )
