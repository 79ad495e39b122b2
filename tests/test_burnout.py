import pytest

from builders import NOW, analyzed, at, make_item
from jira_pulse.analytics.burnout import (
    analyze_burnout,
    recovery_plan,
    risk_level_for,
    weekly_windows,
)
from jira_pulse.core.results import BurnoutResult, InsufficientData, RiskFactor


def _mid_week(week: int) -> float:
    """Days ago for the middle of week ``week`` (0 is the oldest of eight)."""
    return 7 * (8 - week) - 3


def _steady_history():
    return [
        analyzed(make_item(f"D-{w}", created=at(100), resolved=at(_mid_week(w))), cycle=2.0)
        for w in range(8)
    ]


def _overloaded_history(with_early_completions: bool):
    items = []
    for week in range(6):
        for n in range(7):
            item = make_item(f"N-{week}-{n}", created=at(_mid_week(week)), status="In Progress")
            items.append(analyzed(item))
    if with_early_completions:
        for week in range(4):
            for n in range(2):
                item = make_item(f"C-{week}-{n}", created=at(100), resolved=at(_mid_week(week)))
                items.append(analyzed(item, cycle=3.0))
    return items


@pytest.mark.parametrize(
    "score, level",
    [(0, "healthy"), (29, "healthy"), (30, "warning"), (49, "warning"), (50, "high"), (69, "high"),
     (70, "critical"), (100, "critical")],
)
def test_risk_level_boundaries(score, level):
    assert risk_level_for(score) == level


def test_weekly_windows_are_contiguous_and_end_now():
    windows = weekly_windows(NOW, 8)
    assert len(windows) == 8
    assert windows[-1][1] == NOW
    assert all(a[1] == b[0] for a, b in zip(windows, windows[1:]))


def test_steady_history_is_healthy():
    result = analyze_burnout("me", _steady_history(), active_count=6, now=NOW)
    assert isinstance(result, BurnoutResult)
    assert result.score == 0
    assert result.risk_level == "healthy"
    assert result.factors == []
    assert result.recovery_plan == []
    assert [w.completed for w in result.weekly] == [1] * 8


def test_overload_and_load_score_high():
    result = analyze_burnout("me", _overloaded_history(False), active_count=13, now=NOW)
    names = {f.name: f.points for f in result.factors}
    assert names == {"sustained_overload": 40, "current_load": 25}
    assert result.score == 65
    assert result.risk_level == "high"
    assert result.confidence == "high"
    assert any("defer 4 items" in step for step in result.recovery_plan)


def test_declining_velocity_pushes_to_critical():
    result = analyze_burnout("me", _overloaded_history(True), active_count=13, now=NOW)
    names = {f.name: f.points for f in result.factors}
    assert names["declining_velocity"] == 30
    assert names["sustained_overload"] == 40
    assert result.score == 95
    assert result.risk_level == "critical"
    assert result.recovery_plan[-1].startswith("Escalate")


def test_recovery_plan_only_for_high_risk():
    factors = [RiskFactor("crunch_weeks", 15, "3 weeks")]
    assert recovery_plan("warning", factors, 4) == []
    plan = recovery_plan("high", factors, 4)
    assert any("regular hours" in step for step in plan)


def test_too_few_items_is_insufficient():
    result = analyze_burnout("me", _steady_history()[:4], active_count=2, now=NOW)
    assert isinstance(result, InsufficientData)
    assert result.required == 5
