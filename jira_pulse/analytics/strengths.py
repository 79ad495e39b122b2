"""Per-type and per-component strength analysis (pure functions)."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

import pandas as pd

from jira_pulse.analytics.metrics.quality import items_to_dataframe
from jira_pulse.core.config import SETTINGS, AnalyzerSettings
from jira_pulse.core.models import AnalyzedItem, WorkItem
from jira_pulse.core.results import (
    GroupStrength,
    InsufficientData,
    StrengthResult,
    confidence_for,
    insufficient_data,
)

NO_COMPONENT = "No Component"
DELTA_SIGNIFICANT_PCT = 10.0


def expertise_level(count: int, quality: float) -> str:
    if count >= 20 and quality >= 8:
        return "expert"
    if count >= 10 and quality >= 7:
        return "strong"
    if count >= 5 and quality >= 6:
        return "average"
    if count < 5 or quality < 5:
        return "developing"
    return "avoid"


def team_frame(team_items: Sequence[WorkItem]) -> pd.DataFrame:
    """Team baseline: resolved items with ``resolved - created`` as the cycle proxy (days)."""
    rows = []
    for item in team_items:
        if item.created is None or item.resolved is None:
            continue
        days = (item.resolved - item.created).total_seconds() / 86400.0
        if days <= 0:
            continue
        rows.append(
            {
                "issuetype": item.issuetype or "Unknown",
                "components": sorted(item.components) or [NO_COMPONENT],
                "cycle_time": days,
            }
        )
    return pd.DataFrame(rows, columns=["issuetype", "components", "cycle_time"])


def _explode_components(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out["component"] = out["components"].apply(lambda c: list(c) if c else [NO_COMPONENT])
    return out.explode("component")


def _group_strengths(
    user: pd.DataFrame,
    team: pd.DataFrame | None,
    column: str,
    kind: str,
    settings: AnalyzerSettings,
) -> list[GroupStrength]:
    out = []
    for name, group in user.groupby(column, sort=True):
        cycles = group.loc[group["cycle_time"] > 0, "cycle_time"]
        user_avg = float(cycles.mean()) if not cycles.empty else 0.0
        quality = float(group["quality"].mean())
        team_avg, delta = user_avg, 0.0
        if team is not None and len(group) >= settings.min_group_items and user_avg > 0:
            baseline = team.loc[team[column] == name, "cycle_time"]
            if len(baseline) > settings.min_team_sample:
                team_avg = float(baseline.mean())
                delta = (user_avg - team_avg) / team_avg * 100.0
        out.append(
            GroupStrength(
                name=str(name),
                kind=kind,
                count=len(group),
                avg_cycle_time=user_avg,
                team_avg_cycle_time=team_avg,
                delta_pct=delta,
                quality=quality,
                expertise=expertise_level(len(group), quality) if kind == "component" else None,
            )
        )
    return out


def _is_expert(group: GroupStrength) -> bool:
    return group.expertise in {"expert", "strong"} and group.delta_pct <= 0


def _recommendations(strengths: list[GroupStrength], weaknesses: list[GroupStrength]) -> list[str]:
    recs = []
    for group in strengths[:3]:
        if group.delta_pct < 0:
            recs.append(
                f"You're {abs(group.delta_pct):.0f}% faster than the team on {group.name}; "
                "pick these up when speed matters."
            )
        else:
            recs.append(f"You're a {group.expertise} contributor on {group.name}; own work in that area.")
    for group in weaknesses[:2]:
        if group.delta_pct > 0:
            recs.append(
                f"{group.name} takes you {group.delta_pct:.0f}% longer than the team; "
                "consider pairing or timeboxing these."
            )
        else:
            recs.append(f"Quality on {group.name} lags; ask for an early review on that work.")
    if not recs:
        recs.append("No standout strengths or gaps yet; your performance is consistent across work types.")
    return recs


def analyze_strengths(
    subject_id: str,
    items: Sequence[AnalyzedItem],
    team_items: Sequence[WorkItem] | None = None,
    *,
    compare_to_team: bool = True,
    settings: AnalyzerSettings = SETTINGS,
    now: datetime | None = None,
) -> StrengthResult | InsufficientData:
    """Group the subject's work by type and component.

    ``team_items`` is the anonymized baseline; pass ``None`` when it could not
    be fetched and every group reports ``team_avg == user_avg`` with no delta.
    """
    now = now or datetime.now(UTC)
    if len(items) < settings.min_items_strengths:
        return insufficient_data("strengths", subject_id, len(items), settings.min_items_strengths, now)
    df = items_to_dataframe(items)
    compared = compare_to_team and team_items is not None
    team = team_frame(team_items) if compared else None

    by_type = _group_strengths(df, team, "issuetype", "type", settings)
    team_components = _explode_components(team) if team is not None else None
    by_component = _group_strengths(
        _explode_components(df), team_components, "component", "component", settings
    )

    groups = by_type + by_component
    strengths = sorted(
        (g for g in groups if g.delta_pct < -DELTA_SIGNIFICANT_PCT or _is_expert(g)),
        key=lambda g: g.delta_pct,
    )
    weaknesses = sorted(
        (g for g in groups if g.delta_pct > DELTA_SIGNIFICANT_PCT or g.expertise == "avoid"),
        key=lambda g: -g.delta_pct,
    )
    return StrengthResult(
        subject_id=subject_id,
        confidence=confidence_for(len(items)),
        data_points=len(items),
        last_updated=now,
        recommendations=_recommendations(strengths, weaknesses),
        by_type=by_type,
        by_component=by_component,
        strengths=[g.name for g in strengths],
        weaknesses=[g.name for g in weaknesses],
        compared_to_team=compared,
    )
