"""Month-over-month velocity, quality, and skills trends (pure functions)."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict
from datetime import UTC, datetime

import pandas as pd
import pytz

from jira_pulse.analytics.metrics.quality import items_to_dataframe
from jira_pulse.core.config import SETTINGS, TIMEZONE, AnalyzerSettings
from jira_pulse.core.models import AnalyzedItem
from jira_pulse.core.results import (
    InsufficientData,
    PeriodComparison,
    PeriodMetrics,
    SkillGrowth,
    TrendPoint,
    TrendResult,
    confidence_for,
    insufficient_data,
)

STEP_THRESHOLD = 0.10
SKILL_THRESHOLD_PCT = 20.0


def classify_change(previous: float | None, current: float) -> str:
    """``up``/``down``/``stable`` at +/-10% versus the prior value."""
    if previous is None:
        return "stable"
    if previous == 0:
        return "up" if current > 0 else "stable"
    change = (current - previous) / previous
    if change > STEP_THRESHOLD:
        return "up"
    if change < -STEP_THRESHOLD:
        return "down"
    return "stable"


def _series(values: dict[str, float]) -> list[TrendPoint]:
    points = []
    previous = None
    for month in sorted(values):
        value = float(values[month])
        points.append(TrendPoint(month=month, value=value, trend=classify_change(previous, value)))
        previous = value
    return points


def month_frame(df: pd.DataFrame, tz: str = TIMEZONE) -> pd.DataFrame:
    """Attach a ``month`` column (``YYYY-MM``) from resolution, else update time."""
    when = pd.to_datetime(df["resolved"].fillna(df["updated"]), utc=True, errors="coerce")
    local = when.dt.tz_convert(pytz.timezone(tz))
    out = df.assign(month=local.dt.strftime("%Y-%m"))
    return out.dropna(subset=["month"])


def period_metrics(df: pd.DataFrame) -> PeriodMetrics:
    if df.empty:
        return PeriodMetrics()
    done = df[df["is_done"]]
    cycles = df.loc[df["cycle_time"] > 0, "cycle_time"]
    return PeriodMetrics(
        items_completed=len(done),
        story_points=float(done["story_points"].sum()),
        avg_cycle_time=float(cycles.mean()) if not cycles.empty else 0.0,
        quality=float(df["quality"].mean()),
        defect_rate=float(df["defect"].astype(float).mean()),
    )


def _pct_change(before: float, after: float) -> float:
    if before == 0:
        return 0.0
    return (after - before) / before * 100.0


def compare_periods(first: PeriodMetrics, second: PeriodMetrics) -> PeriodComparison:
    a, b = asdict(first), asdict(second)
    return PeriodComparison(first=first, second=second, deltas={k: _pct_change(a[k], b[k]) for k in a})


def skills_evolution(first: pd.DataFrame, second: pd.DataFrame) -> list[SkillGrowth]:
    before = first["issuetype"].value_counts().to_dict() if not first.empty else {}
    after = second["issuetype"].value_counts().to_dict() if not second.empty else {}
    out = []
    for issuetype in sorted(set(before) | set(after)):
        a, b = int(before.get(issuetype, 0)), int(after.get(issuetype, 0))
        growth = (b - a) / a * 100.0 if a else 0.0
        if growth > SKILL_THRESHOLD_PCT:
            trend = "growing"
        elif growth < -SKILL_THRESHOLD_PCT:
            trend = "declining"
        else:
            trend = "stable"
        out.append(
            SkillGrowth(issuetype=issuetype, first_half=a, second_half=b, growth_pct=growth, trend=trend)
        )
    return out


def _recommendations(
    velocity: list[TrendPoint],
    quality: list[TrendPoint],
    skills: list[SkillGrowth],
    periods: PeriodComparison,
) -> list[str]:
    recs = []
    if velocity:
        last = velocity[-1]
        if last.trend == "down":
            recs.append(f"Velocity dipped in {last.month}; check for blockers or context switching.")
        elif last.trend == "up":
            recs.append(f"Velocity is rising ({last.value:.0f} items in {last.month}); keep the momentum.")
    if quality and quality[-1].trend == "down":
        recs.append("Quality trended down last month; slow down on reviews and testing.")
    growing = [s.issuetype for s in skills if s.trend == "growing"]
    if growing:
        recs.append(f"You're taking on more {', '.join(growing)} work than before.")
    completed = periods.deltas.get("items_completed", 0.0)
    if completed:
        direction = "more" if completed > 0 else "fewer"
        recs.append(f"You completed {abs(completed):.0f}% {direction} items in the recent half.")
    if not recs:
        recs.append("Your output is steady month over month.")
    return recs


def analyze_trends(
    subject_id: str,
    items: Sequence[AnalyzedItem],
    *,
    months: int = 6,
    settings: AnalyzerSettings = SETTINGS,
    tz: str = TIMEZONE,
    now: datetime | None = None,
) -> TrendResult | InsufficientData:
    now = now or datetime.now(UTC)
    if len(items) < settings.min_items_trends:
        return insufficient_data("trends", subject_id, len(items), settings.min_items_trends, now)
    df = month_frame(items_to_dataframe(items), tz)
    all_months = sorted(df["month"].unique())

    done = df[df["is_done"]]
    velocity = _series({m: int((done["month"] == m).sum()) for m in all_months})
    quality = _series(df.groupby("month")["quality"].mean().to_dict())

    if len(all_months) >= 2:
        midpoint = len(all_months) // 2
        first = df[df["month"].isin(all_months[:midpoint])]
        second = df[df["month"].isin(all_months[midpoint:])]
        skills = skills_evolution(first, second)
        periods = compare_periods(period_metrics(first), period_metrics(second))
    else:
        skills = []
        periods = compare_periods(PeriodMetrics(), PeriodMetrics())

    return TrendResult(
        subject_id=subject_id,
        confidence=confidence_for(len(items)),
        data_points=len(items),
        last_updated=now,
        recommendations=_recommendations(velocity, quality, skills, periods),
        months=months,
        velocity=velocity,
        quality=quality,
        skills=skills,
        periods=periods,
    )
