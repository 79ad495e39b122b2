"""Collaboration chemistry inferred from assignee hand-offs (pure functions)."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, datetime

from jira_pulse.core.config import SETTINGS, AnalyzerSettings
from jira_pulse.core.models import AnalyzedItem
from jira_pulse.core.results import (
    CollaborationResult,
    InsufficientData,
    NetworkEdge,
    TeamMetrics,
    TeammateChemistry,
    confidence_for,
    insufficient_data,
)

DEFAULT_SOLO_CYCLE_DAYS = 10.0
TOP_TEAMMATES = 10


def collaborators(subject_id: str, analyzed: AnalyzedItem) -> dict[str, str]:
    """Identities other than the subject that held the item, mapped to a display name."""
    found: dict[str, str] = {}
    item = analyzed.item
    if item.assignee_id and item.assignee_id != subject_id:
        found[item.assignee_id] = item.assignee or item.assignee_id
    for event in analyzed.transitions:
        if event.field != "assignee":
            continue
        for identity in (event.from_value, event.to_value):
            if identity and identity != subject_id and identity not in found:
                name = item.assignee if identity == item.assignee_id and item.assignee else identity
                found[identity] = name
    return found


def _mean_cycle(items: Sequence[AnalyzedItem]) -> float | None:
    cycles = [a.metrics.cycle_time_days for a in items if a.metrics.cycle_time_days > 0]
    return sum(cycles) / len(cycles) if cycles else None


def chemistry_score(speed_multiplier: float, shared_items: int) -> int:
    score = 50
    if speed_multiplier > 1.2:
        score += 30
    elif speed_multiplier > 1.0:
        score += 15
    elif speed_multiplier < 0.8:
        score -= 20
    if shared_items > 10:
        score += 20
    elif shared_items > 5:
        score += 10
    return max(0, min(100, score))


def chemistry_rating(score: float) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "neutral"
    return "needs-work"


def solo_mean(subject_id: str, items: Sequence[AnalyzedItem]) -> float:
    """Mean cycle time of unshared items, falling back to all items, then 10 days."""
    solo = [a for a in items if not collaborators(subject_id, a)]
    value = _mean_cycle(solo)
    if value is None:
        value = _mean_cycle(items)
    return value if value is not None else DEFAULT_SOLO_CYCLE_DAYS


def _recommendations(teammates: Sequence[TeammateChemistry]) -> list[str]:
    if not teammates:
        return ["Most of your work is solo; try pairing on a ticket to spread knowledge."]
    recs = []
    best = teammates[0]
    if best.rating in {"excellent", "good"}:
        recs.append(
            f"You deliver {best.speed_multiplier:.1f}x faster with {best.name}; "
            "pair with them on complex or urgent work."
        )
    for mate in teammates:
        if mate.rating == "needs-work":
            recs.append(f"Work shared with {mate.name} tends to run slower; agree on hand-offs up front.")
            break
    if not recs:
        recs.append("Your collaborations perform about the same as your solo work.")
    return recs


def analyze_collaboration(
    subject_id: str,
    items: Sequence[AnalyzedItem],
    *,
    settings: AnalyzerSettings = SETTINGS,
    now: datetime | None = None,
) -> CollaborationResult | InsufficientData:
    now = now or datetime.now(UTC)
    if len(items) < settings.min_items_collaboration:
        return insufficient_data(
            "collaboration", subject_id, len(items), settings.min_items_collaboration, now
        )
    solo = solo_mean(subject_id, items)

    shared: dict[str, list[AnalyzedItem]] = defaultdict(list)
    names: dict[str, str] = {}
    shared_items: list[AnalyzedItem] = []
    for analyzed in items:
        found = collaborators(subject_id, analyzed)
        if found:
            shared_items.append(analyzed)
        for identity, name in found.items():
            shared[identity].append(analyzed)
            names.setdefault(identity, name)

    profiles = []
    for identity, group in shared.items():
        shared_mean = _mean_cycle(group)
        multiplier = solo / shared_mean if shared_mean else 1.0
        score = chemistry_score(multiplier, len(group))
        profiles.append(
            TeammateChemistry(
                teammate_id=identity,
                name=names[identity],
                shared_items=len(group),
                shared_avg_cycle_time=shared_mean or 0.0,
                speed_multiplier=multiplier,
                score=score,
                rating=chemistry_rating(score),
            )
        )
    profiles.sort(key=lambda p: (-p.score, -p.shared_items, p.name))
    top = profiles[:TOP_TEAMMATES]
    network = [
        NetworkEdge(source=subject_id, target=p.teammate_id, weight=p.shared_items, score=p.score)
        for p in top
    ]
    team_metrics = TeamMetrics(
        best_pair=top[0].name if top else None,
        avg_collab_cycle_time=_mean_cycle(shared_items) or 0.0,
        total_collaborations=len(shared_items),
    )
    return CollaborationResult(
        subject_id=subject_id,
        confidence=confidence_for(len(items), high=50, medium=25, inclusive=False),
        data_points=len(items),
        last_updated=now,
        recommendations=_recommendations(top),
        solo_avg_cycle_time=solo,
        teammates=top,
        network=network,
        team_metrics=team_metrics,
    )
