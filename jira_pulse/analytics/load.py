"""Concurrent workload analysis (pure functions)."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import UTC, datetime

import numpy as np
import pandas as pd

from jira_pulse.analytics.metrics.quality import items_to_dataframe
from jira_pulse.core.config import SETTINGS, AnalyzerSettings
from jira_pulse.core.models import AnalyzedItem
from jira_pulse.core.results import (
    InsufficientData,
    LoadLevel,
    LoadResult,
    confidence_for,
    insufficient_data,
)

UNDER = "under"
OPTIMAL = "optimal"
OVER = "over"
CRITICAL = "critical"


def load_zone(load: int, settings: AnalyzerSettings = SETTINGS) -> str:
    """Classify an active-item count: under <5, optimal 5-9, over 10-12, critical 13+."""
    if load < settings.optimal_load_min:
        return UNDER
    if load <= settings.optimal_load_max:
        return OPTIMAL
    if load <= settings.over_load_max:
        return OVER
    return CRITICAL


def concurrent_loads(df: pd.DataFrame, now: datetime) -> list[int]:
    """Items in flight alongside each item, the item itself included.

    Each item is active over ``[created, resolved or now)``. Items without a
    creation timestamp report a load of 1.
    """
    if df.empty:
        return []
    now_ts = pd.Timestamp(now)
    now_ts = now_ts.tz_localize("UTC") if now_ts.tzinfo is None else now_ts.tz_convert("UTC")
    starts = pd.to_datetime(df["created"], utc=True, errors="coerce")
    ends = pd.to_datetime(df["resolved"], utc=True, errors="coerce").fillna(now_ts)
    start_ns = starts.to_numpy(dtype="datetime64[ns]")
    end_ns = ends.to_numpy(dtype="datetime64[ns]")
    overlap = (start_ns[:, None] < end_ns[None, :]) & (start_ns[None, :] < end_ns[:, None])
    counts = overlap.sum(axis=1)
    return [max(1, int(c)) for c in np.asarray(counts)]


def load_curve(df: pd.DataFrame) -> list[LoadLevel]:
    if df.empty:
        return []
    curve = []
    for load, group in df.groupby("load", sort=True):
        cycles = group.loc[group["cycle_time"] > 0, "cycle_time"]
        avg_cycle = float(cycles.mean()) if not cycles.empty else 0.0
        defect_rate = float(group["defect"].astype(float).mean())
        completion_rate = float(group["is_done"].astype(float).mean())
        score = (1.0 / avg_cycle) * (1.0 - defect_rate) * completion_rate if avg_cycle > 0 else 0.0
        curve.append(
            LoadLevel(
                load=int(load),
                items=len(group),
                avg_cycle_time=avg_cycle,
                defect_rate=defect_rate,
                completion_rate=completion_rate,
                score=score,
            )
        )
    return curve


def _recommendations(
    current: int, status: str, curve: Sequence[LoadLevel], settings: AnalyzerSettings
) -> list[str]:
    lo, hi = settings.optimal_load_min, settings.optimal_load_max
    recs = []
    if status in {OVER, CRITICAL}:
        recs.append(
            f"You have {current} active items, above your optimal {lo}-{hi}. "
            f"Finish or hand off {current - hi} before starting anything new."
        )
        if status == CRITICAL:
            recs.append("Workload is critical: raise it with your lead and defer non-urgent items.")
    elif status == UNDER:
        recs.append(f"You have capacity for about {lo - current} more items.")
    else:
        recs.append(f"Your current load of {current} items is in the optimal range.")
    scored = [lvl for lvl in curve if lvl.score > 0]
    if scored:
        best = max(scored, key=lambda lvl: lvl.score)
        recs.append(f"Historically you deliver best with {best.load} items in flight.")
    return recs


def with_current_load(result: LoadResult, current: int, settings: AnalyzerSettings = SETTINGS) -> LoadResult:
    """Refresh the live part of a (possibly cached) load result."""
    status = load_zone(current, settings)
    return replace(
        result,
        current_load=current,
        current_status=status,
        recommendations=_recommendations(current, status, result.curve, settings),
    )


def with_stale_load(result: LoadResult) -> LoadResult:
    """Mark a cached load result whose active count could not be refetched in time."""
    note = (
        f"Live item count unavailable; showing {result.current_load} active items "
        f"as of {result.last_updated:%Y-%m-%d %H:%M}."
    )
    return replace(result, recommendations=[*result.recommendations, note])


def analyze_load(
    subject_id: str,
    items: Sequence[AnalyzedItem],
    active_count: int,
    *,
    settings: AnalyzerSettings = SETTINGS,
    now: datetime | None = None,
) -> LoadResult | InsufficientData:
    now = now or datetime.now(UTC)
    if len(items) < settings.min_items_load:
        return insufficient_data("load", subject_id, len(items), settings.min_items_load, now)
    df = items_to_dataframe(items)
    df["load"] = concurrent_loads(df, now)
    curve = load_curve(df)
    status = load_zone(active_count, settings)
    return LoadResult(
        subject_id=subject_id,
        confidence=confidence_for(len(items)),
        data_points=len(items),
        last_updated=now,
        recommendations=_recommendations(active_count, status, curve, settings),
        current_load=active_count,
        current_status=status,
        optimal_min=settings.optimal_load_min,
        optimal_max=settings.optimal_load_max,
        avg_load=float(df["load"].mean()),
        curve=curve,
    )
