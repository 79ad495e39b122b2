"""Hour-of-day and weekday productivity analysis (pure functions)."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

import pandas as pd
import pytz

from jira_pulse.analytics.metrics.quality import items_to_dataframe
from jira_pulse.core.config import DEFAULT_TIME_RANGE, SETTINGS, TIMEZONE, WEEKDAY_NAMES, AnalyzerSettings
from jira_pulse.core.models import AnalyzedItem
from jira_pulse.core.results import (
    DangerZone,
    DayPattern,
    HourStat,
    InsufficientData,
    PeakWindow,
    TimingResult,
    confidence_for,
    insufficient_data,
)

NEUTRAL_QUALITY = 5.0
DEFAULT_PEAK_HOURS = (10, 12)


def event_frame(df: pd.DataFrame, tz: str = TIMEZONE) -> pd.DataFrame:
    """One row per update or resolution timestamp, carrying the item's quality."""
    if df.empty:
        return pd.DataFrame(columns=["ts", "quality"])
    parts = []
    for col in ("updated", "resolved"):
        part = df.loc[df[col].notna(), [col, "quality"]].rename(columns={col: "ts"})
        parts.append(part)
    events = pd.concat(parts, ignore_index=True)
    if events.empty:
        return pd.DataFrame(columns=["ts", "quality"])
    events["ts"] = pd.to_datetime(events["ts"], utc=True, errors="coerce").dt.tz_convert(pytz.timezone(tz))
    return events.dropna(subset=["ts"])


def hourly_quality(events: pd.DataFrame) -> list[HourStat]:
    """Volume and mean quality for each of the 24 hours; empty hours score neutral."""
    stats = []
    if events.empty:
        grouped = pd.DataFrame(columns=["volume", "quality"])
    else:
        grouped = events.groupby(events["ts"].dt.hour)["quality"].agg(volume="count", quality="mean")
    for hour in range(24):
        if hour in grouped.index:
            row = grouped.loc[hour]
            stats.append(HourStat(hour=hour, volume=int(row["volume"]), quality=float(row["quality"])))
        else:
            stats.append(HourStat(hour=hour, volume=0, quality=NEUTRAL_QUALITY))
    return stats


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def find_peak_window(hourly: Sequence[HourStat], settings: AnalyzerSettings = SETTINGS) -> PeakWindow:
    eligible = [h for h in hourly if h.volume >= settings.min_hour_volume]
    if not eligible:
        start, end = DEFAULT_PEAK_HOURS
        return PeakWindow(start_hour=start, end_hour=end, quality_multiplier=1.0)
    top = sorted(eligible, key=lambda h: (-h.quality, h.hour))[: settings.peak_hours]
    overall = _mean([h.quality for h in hourly])
    multiplier = _mean([h.quality for h in top]) / overall if overall > 0 else 1.0
    hours = [h.hour for h in top]
    return PeakWindow(start_hour=min(hours), end_hour=max(hours) + 1, quality_multiplier=multiplier)


def find_danger_zone(hourly: Sequence[HourStat], settings: AnalyzerSettings = SETTINGS) -> DangerZone | None:
    """Bottom eligible hours, reported only when clearly below the eligible mean."""
    eligible = [h for h in hourly if h.volume >= settings.min_hour_volume]
    if len(eligible) <= settings.danger_hours:
        return None
    bottom = sorted(eligible, key=lambda h: (h.quality, h.hour))[: settings.danger_hours]
    average = _mean([h.quality for h in eligible])
    worst = _mean([h.quality for h in bottom])
    if worst >= settings.danger_ratio * average:
        return None
    hours = [h.hour for h in bottom]
    return DangerZone(
        start_hour=min(hours),
        end_hour=max(hours) + 1,
        revert_multiplier=average / max(worst, 0.1),
    )


def weekday_patterns(df: pd.DataFrame, tz: str = TIMEZONE) -> list[DayPattern]:
    if df.empty:
        return [DayPattern(day=name, quality=0.0, speed=0.0, volume=0) for name in WEEKDAY_NAMES]
    when = df["resolved"].fillna(df["updated"])
    local = pd.to_datetime(when, utc=True, errors="coerce").dt.tz_convert(pytz.timezone(tz))
    frame = df.assign(weekday=local.dt.weekday).dropna(subset=["weekday"])
    out = []
    for idx, name in enumerate(WEEKDAY_NAMES):
        day = frame[frame["weekday"] == idx]
        if day.empty:
            out.append(DayPattern(day=name, quality=0.0, speed=0.0, volume=0))
            continue
        cycles = day.loc[day["cycle_time"] > 0, "cycle_time"]
        speed = 1.0 / float(cycles.mean()) if not cycles.empty else 0.0
        out.append(DayPattern(day=name, quality=float(day["quality"].mean()), speed=speed, volume=len(day)))
    return out


def _recommendations(peak: PeakWindow, danger: DangerZone | None, best_day: str | None) -> list[str]:
    recs = []
    if peak.quality_multiplier > 1.0:
        recs.append(
            f"Schedule deep work between {peak.start_hour}:00 and {peak.end_hour}:00, "
            f"where your work quality runs {peak.quality_multiplier:.1f}x your average."
        )
    else:
        recs.append(
            f"No clear peak yet; {peak.start_hour}:00-{peak.end_hour}:00 is a sensible default for focus."
        )
    if danger is not None:
        drop = (1.0 - 1.0 / danger.revert_multiplier) * 100.0 if danger.revert_multiplier > 0 else 0.0
        recs.append(
            f"Avoid critical work after {danger.start_hour}:00; quality drops about {drop:.0f}% "
            f"between {danger.start_hour}:00 and {danger.end_hour}:00."
        )
    if best_day:
        recs.append(f"{best_day} is your strongest day; plan complex tasks for it.")
    return recs


def analyze_timing(
    subject_id: str,
    items: Sequence[AnalyzedItem],
    *,
    time_range: str = DEFAULT_TIME_RANGE,
    settings: AnalyzerSettings = SETTINGS,
    tz: str = TIMEZONE,
    now: datetime | None = None,
) -> TimingResult | InsufficientData:
    now = now or datetime.now(UTC)
    if len(items) < settings.min_items_timing:
        return insufficient_data("timing", subject_id, len(items), settings.min_items_timing, now)
    df = items_to_dataframe(items)
    hourly = hourly_quality(event_frame(df, tz))
    peak = find_peak_window(hourly, settings)
    danger = find_danger_zone(hourly, settings)
    weekdays = weekday_patterns(df, tz)
    active_days = [d for d in weekdays if d.volume > 0]
    best_day = max(active_days, key=lambda d: (d.quality, d.volume)).day if active_days else None
    return TimingResult(
        subject_id=subject_id,
        confidence=confidence_for(len(items)),
        data_points=len(items),
        last_updated=now,
        recommendations=_recommendations(peak, danger, best_day),
        time_range=time_range,
        peak=peak,
        danger=danger,
        hourly=hourly,
        weekdays=weekdays,
        best_day=best_day,
    )
