import numpy as np
import pytest

from builders import NOW, analyzed, at, make_item
from jira_pulse.analytics.prediction import (
    analyze_prediction,
    at_risk_items,
    percentile_bounds,
    scenario_advice,
)
from jira_pulse.core.results import InsufficientData, PredictionResult


def _history(cycles, days_ago_start=1):
    return [
        analyzed(make_item(f"H-{i}", resolved=at(days_ago_start + i)), cycle=c) for i, c in enumerate(cycles)
    ]


def _active(n):
    return [make_item(f"A-{i}", status="In Progress") for i in range(n)]


def test_completion_probability_never_increases_with_queue_size():
    history = _history([0.5, 1.0, 2.0, 3.0, 5.0, 8.0, 1.5, 4.0])
    result = analyze_prediction(
        "me", history, _active(4), days_remaining=10, rng=np.random.default_rng(7), now=NOW
    )
    by_size = {s.items: s.probability for s in result.scenarios}
    by_size[4] = result.completion_probability
    assert sorted(by_size) == [2, 3, 4, 5, 6]
    probabilities = [by_size[n] for n in sorted(by_size)]
    assert all(a >= b for a, b in zip(probabilities, probabilities[1:]))
    # The spread of cycle times makes the outcome genuinely uncertain
    assert 0.0 < by_size[6] < by_size[2] <= 1.0


def test_constant_cycle_times_are_deterministic():
    result = analyze_prediction(
        "me", _history([2.0] * 6), _active(4), days_remaining=10, rng=np.random.default_rng(1), now=NOW
    )
    assert isinstance(result, PredictionResult)
    assert result.completion_probability == 1.0
    assert result.expected_completed == pytest.approx(4.0)
    assert (result.interval_low, result.interval_high) == (4, 4)
    scenarios = {s.label: s for s in result.scenarios}
    assert scenarios["add 1 item"].probability == 1.0
    assert scenarios["add 2 items"].probability == 0.0
    assert scenarios["add 2 items"].advice == "avoid"
    assert scenarios["remove 2 items"].items == 2
    assert result.at_risk == []
    assert result.trials == 1000


def test_items_past_the_budget_are_flagged():
    risks = at_risk_items(_active(7), avg_cycle=2.0, days=10.0)
    assert [(r.key, r.severity) for r in risks] == [("A-5", "medium"), ("A-6", "high")]
    assert risks[1].overshoot_days == pytest.approx(4.0)


def test_empty_queue_is_certain():
    result = analyze_prediction("me", _history([1.0] * 5), [], rng=np.random.default_rng(3), now=NOW)
    assert result.completion_probability == 1.0
    assert result.days_remaining == 10
    assert [s.label for s in result.scenarios] == ["add 1 item", "add 2 items"]
    assert result.recommendations[0].startswith("Nothing in flight")


def test_velocity_counts_last_week_only():
    result = analyze_prediction(
        "me", _history([1.0] * 10), _active(1), rng=np.random.default_rng(0), now=NOW
    )
    # Resolved 1..10 days ago; the first seven fall inside the last week
    assert result.current_velocity == 7


def test_scenario_advice_bands():
    assert [scenario_advice(p) for p in (0.71, 0.7, 0.51, 0.5)] == ["safe", "risky", "risky", "avoid"]


def test_percentile_bounds():
    counts = np.arange(10)
    assert percentile_bounds(counts, 10, 90) == (0, 8)
    assert percentile_bounds(np.array([3, 3, 4, 5, 5]), 10, 90) == (3, 5)
    assert percentile_bounds(np.array([], dtype=int), 10, 90) == (0, 0)


def test_unknown_cycle_times_do_not_count_toward_minimum():
    history = _history([2.0] * 4 + [0.0] * 10)
    result = analyze_prediction("me", history, _active(2), now=NOW)
    assert isinstance(result, InsufficientData)
    assert result.data_points == 4
    assert result.analyzer == "prediction"
