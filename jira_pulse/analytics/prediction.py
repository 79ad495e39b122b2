"""Monte Carlo sprint completion forecast (pure functions).

Each trial draws one historical cycle time per queued item (with
replacement) and walks the queue in order until the day budget runs out.
Trial count (1000) and the reported 10th/90th percentiles come from
``AnalyzerSettings`` so the bounds are documented and reproducible with a
seeded generator. The active queue and every scenario share one draw
matrix, so the completion probability never rises as items are added.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

import numpy as np

from jira_pulse.core.config import SETTINGS, AnalyzerSettings
from jira_pulse.core.models import AnalyzedItem, WorkItem
from jira_pulse.core.results import (
    InsufficientData,
    PredictionResult,
    RiskItem,
    Scenario,
    confidence_for,
    insufficient_data,
)

SCENARIO_DELTAS: Sequence[int] = (1, 2, -1, -2)


def cycle_samples(history: Sequence[AnalyzedItem]) -> np.ndarray:
    """Known (non-zero) historical cycle times in days."""
    cycles = [a.metrics.cycle_time_days for a in history if a.metrics.cycle_time_days > 0]
    return np.array(cycles, dtype=float)


def simulate_cumulative(
    samples: np.ndarray, max_items: int, trials: int, rng: np.random.Generator
) -> np.ndarray:
    """Cumulative elapsed days per trial (rows) after each queued item (columns)."""
    if max_items <= 0:
        return np.zeros((trials, 0))
    draws = rng.choice(samples, size=(trials, max_items), replace=True)
    return np.cumsum(draws, axis=1)


def completed_counts(cumulative: np.ndarray, items: int, days: float) -> np.ndarray:
    """Items finished within the budget in each trial, for a queue of ``items``."""
    if items <= 0:
        return np.zeros(cumulative.shape[0], dtype=int)
    return (cumulative[:, :items] <= days).sum(axis=1)


def percentile_bounds(counts: np.ndarray, low_pct: float, high_pct: float) -> tuple[int, int]:
    """Lower-interpolated percentiles, so both bounds are counts some trial actually reached."""
    if len(counts) == 0:
        return 0, 0
    low, high = np.percentile(counts, [low_pct, high_pct], method="lower")
    return int(low), int(high)


def risk_severity(overshoot: float, avg_cycle: float) -> str:
    if overshoot > 2 * avg_cycle:
        return "critical"
    if overshoot > avg_cycle:
        return "high"
    if overshoot > 0.5 * avg_cycle:
        return "medium"
    return "low"


def at_risk_items(active: Sequence[WorkItem], avg_cycle: float, days: float) -> list[RiskItem]:
    """Flag queued items whose estimated finish (position x mean cycle time) passes the budget."""
    out = []
    for position, item in enumerate(active, start=1):
        estimate = avg_cycle * position
        overshoot = estimate - days
        if overshoot <= 0:
            continue
        out.append(
            RiskItem(
                key=item.key,
                position=position,
                estimated_days=estimate,
                overshoot_days=overshoot,
                severity=risk_severity(overshoot, avg_cycle),
            )
        )
    return out


def scenario_advice(probability: float) -> str:
    if probability > 0.7:
        return "safe"
    if probability > 0.5:
        return "risky"
    return "avoid"


def _scenario_label(delta: int) -> str:
    noun = "item" if abs(delta) == 1 else "items"
    return f"add {delta} {noun}" if delta > 0 else f"remove {-delta} {noun}"


def _recommendations(
    active_count: int, probability: float, expected: float, at_risk: Sequence[RiskItem]
) -> list[str]:
    recs = []
    if active_count == 0:
        return ["Nothing in flight; you have room to pull new work."]
    if probability >= 0.8:
        recs.append(f"On track: {probability:.0%} chance to finish all {active_count} items.")
    elif probability >= 0.5:
        recs.append(f"Tight: {probability:.0%} chance to finish all {active_count} items; hold scope.")
    else:
        excess = max(1, active_count - int(round(expected)))
        recs.append(
            f"At risk: only {probability:.0%} chance to finish all {active_count} items. "
            f"Consider moving {excess} out of the sprint."
        )
    critical = [r.key for r in at_risk if r.severity in {"critical", "high"}]
    if critical:
        recs.append(f"Unlikely to fit this sprint: {', '.join(critical[:5])}.")
    return recs


def analyze_prediction(
    subject_id: str,
    history: Sequence[AnalyzedItem],
    active: Sequence[WorkItem],
    *,
    days_remaining: float | None = None,
    settings: AnalyzerSettings = SETTINGS,
    rng: np.random.Generator | None = None,
    now: datetime | None = None,
) -> PredictionResult | InsufficientData:
    now = now or datetime.now(UTC)
    samples = cycle_samples(history)
    if len(samples) < settings.min_items_prediction:
        return insufficient_data("prediction", subject_id, len(samples), settings.min_items_prediction, now)
    rng = rng or np.random.default_rng()
    days = settings.sprint_days_remaining if days_remaining is None else float(days_remaining)
    trials = settings.monte_carlo_trials
    n = len(active)

    cumulative = simulate_cumulative(samples, n + max(SCENARIO_DELTAS), trials, rng)
    counts = completed_counts(cumulative, n, days)
    probability = float((counts == n).mean()) if n else 1.0
    expected = float(counts.mean()) if n else 0.0
    low, high = percentile_bounds(counts, settings.interval_low_pct, settings.interval_high_pct)

    scenarios = []
    for delta in SCENARIO_DELTAS:
        size = n + delta
        if size < 0:
            continue
        p = float((completed_counts(cumulative, size, days) == size).mean()) if size else 1.0
        scenarios.append(
            Scenario(
                label=_scenario_label(delta),
                delta=delta,
                items=size,
                probability=p,
                advice=scenario_advice(p),
            )
        )

    avg_cycle = float(samples.mean())
    at_risk = at_risk_items(active, avg_cycle, days)
    week_ago = now - timedelta(days=7)
    velocity = sum(1 for a in history if a.item.resolved is not None and a.item.resolved >= week_ago)
    return PredictionResult(
        subject_id=subject_id,
        confidence=confidence_for(len(samples), high=30, medium=15, inclusive=False),
        data_points=len(samples),
        last_updated=now,
        recommendations=_recommendations(n, probability, expected, at_risk),
        active_items=n,
        days_remaining=days,
        trials=trials,
        completion_probability=probability,
        expected_completed=expected,
        interval_low=low,
        interval_high=high,
        avg_cycle_time=avg_cycle,
        current_velocity=velocity,
        at_risk=at_risk,
        scenarios=scenarios,
    )
