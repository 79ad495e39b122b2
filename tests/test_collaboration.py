import pytest

from builders import NOW, analyzed, at, make_item
from jira_pulse.analytics.collaboration import (
    analyze_collaboration,
    chemistry_rating,
    chemistry_score,
    collaborators,
    solo_mean,
)
from jira_pulse.core.models import TransitionEvent
from jira_pulse.core.results import CollaborationResult, InsufficientData


def _handoff(frm, to, days_ago=5):
    return TransitionEvent(timestamp=at(days_ago), actor=frm, field="assignee", from_value=frm, to_value=to)


def _solo(n, cycle=10.0):
    return [analyzed(make_item(f"SOLO-{i}", resolved=at(i + 1)), cycle=cycle) for i in range(n)]


def _shared_with_bob(n, cycle=7.0):
    return [
        analyzed(make_item(f"BOB-{i}", resolved=at(i + 1)), cycle=cycle, transitions=(_handoff("bob", "me"),))
        for i in range(n)
    ]


def test_collaborators_from_assignee_and_handoffs():
    item = make_item("X-1", assignee_id="carol", assignee="Carol")
    events = (_handoff("me", "dave"), _handoff("dave", "carol"))
    found = collaborators("me", analyzed(item, transitions=events))
    assert found == {"carol": "Carol", "dave": "dave"}
    assert collaborators("me", analyzed(make_item("X-2"))) == {}


@pytest.mark.parametrize(
    "multiplier, shared, score",
    [(1.43, 12, 100), (1.1, 6, 75), (1.0, 3, 50), (0.7, 3, 30), (0.5, 20, 50)],
)
def test_chemistry_score(multiplier, shared, score):
    assert chemistry_score(multiplier, shared) == score


def test_chemistry_rating_bands():
    assert [chemistry_rating(s) for s in (80, 79, 60, 59, 40, 39)] == [
        "excellent", "good", "good", "neutral", "neutral", "needs-work"
    ]


def test_fast_pairing_is_excellent():
    items = _solo(4) + _shared_with_bob(12)
    result = analyze_collaboration("me", items, now=NOW)
    assert isinstance(result, CollaborationResult)
    assert result.solo_avg_cycle_time == pytest.approx(10.0)
    bob = result.teammates[0]
    assert bob.teammate_id == "bob"
    assert bob.shared_items == 12
    assert round(bob.speed_multiplier, 2) == 1.43
    assert bob.score == 100
    assert bob.rating == "excellent"
    assert result.network[0].weight == 12
    assert result.team_metrics.best_pair == "bob"
    assert result.team_metrics.total_collaborations == 12
    assert result.team_metrics.avg_collab_cycle_time == pytest.approx(7.0)
    assert "1.4x faster with bob" in result.recommendations[0]


def test_slow_teammate_needs_work():
    slow = [
        analyzed(make_item(f"C-{i}", assignee_id="carol", assignee="Carol"), cycle=14.0) for i in range(2)
    ]
    result = analyze_collaboration("me", _solo(10) + slow, now=NOW)
    carol = result.teammates[0]
    assert carol.name == "Carol"
    assert carol.score == 30
    assert carol.rating == "needs-work"
    assert any("Carol" in rec for rec in result.recommendations)


def test_solo_mean_fallbacks():
    assert solo_mean("me", _shared_with_bob(3, cycle=4.0)) == pytest.approx(4.0)
    assert solo_mean("me", _shared_with_bob(3, cycle=0.0)) == 10.0


def test_all_solo_work_has_no_teammates():
    result = analyze_collaboration("me", _solo(10), now=NOW)
    assert result.teammates == []
    assert result.team_metrics.best_pair is None
    assert "solo" in result.recommendations[0]


def test_too_few_items_is_insufficient():
    result = analyze_collaboration("me", _solo(4), now=NOW)
    assert isinstance(result, InsufficientData)
    assert result.confidence == "low"
