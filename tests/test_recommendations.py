import numpy as np
import pytest

from builders import NOW, FakeSource, analyzed, done_item, lifecycle, make_item
from jira_pulse.analytics.timing import analyze_timing
from jira_pulse.core.cache import AnalysisCache
from jira_pulse.core.errors import InvalidRequestError
from jira_pulse.core.models import TransitionEvent
from jira_pulse.core.results import insufficient_data
from jira_pulse.core.service import InsightsService
from jira_pulse.features.recommendations import (
    Recommendation,
    RecommendationEngine,
    classify_context,
    current_status,
    leading_advice,
    rank,
)


def _engine(items, transitions, active=()):
    source = FakeSource(items=items, transitions=transitions, active=active)
    service = InsightsService(source, AnalysisCache(clock=lambda: NOW), rng=np.random.default_rng(5))
    return RecommendationEngine(service)


def _noon_items(n=12):
    items = [done_item(f"PULSE-{i}", days_ago=i + 1, hour=12) for i in range(n)]
    return items, {item.key: lifecycle(item, 2.0) for item in items}


@pytest.mark.parametrize(
    "text, category",
    [
        ("Which ticket should I pick next?", "ticket_selection"),
        ("When should I deploy this?", "timing"),
        ("Do I have capacity for more?", "workload"),
        ("Who should review my change?", "reviewer"),
        ("Is it a good time to pick up a task?", "ticket_selection"),
        ("How am I doing?", "general"),
        (None, "general"),
    ],
)
def test_classify_context(text, category):
    assert classify_context(text) == category


def test_rank_is_stable_within_priority():
    recs = [
        Recommendation(type="general", priority="low", message="a"),
        Recommendation(type="general", priority="high", message="b"),
        Recommendation(type="general", priority="low", message="c"),
        Recommendation(type="general", priority="medium", message="d"),
        Recommendation(type="general", priority="high", message="e"),
    ]
    assert [r.message for r in rank(recs)] == ["b", "e", "d", "a", "c"]


def test_current_status_in_peak_hours():
    items, _ = _noon_items()
    timing = analyze_timing("me", [analyzed(i, cycle=2.0) for i in items], now=NOW)
    snapshot = current_status(timing, None, NOW)
    assert snapshot.hour == 12
    assert snapshot.time_zone == "peak"
    assert snapshot.load_zone is None
    assert current_status(None, None, NOW).time_zone == "normal"


def test_insufficient_data_becomes_low_priority_advice():
    rec = leading_advice("timing", insufficient_data("timing", "me", 3, 10, NOW))
    assert rec.priority == "low"
    assert rec.actionable is False
    assert "found 3 items" in rec.message


def test_missing_subject_or_context_is_rejected():
    engine = _engine(*_noon_items())
    with pytest.raises(InvalidRequestError):
        engine.get_recommendation("", "which ticket?")
    with pytest.raises(InvalidRequestError):
        engine.get_recommendation("me", "   ")
    engine.service.close()


def test_ticket_selection_during_peak_hours():
    engine = _engine(*_noon_items())
    recs = engine.get_recommendation("me", "Which ticket should I pick?")
    assert all(r.type == "ticket_selection" for r in recs)
    assert any("peak hours" in r.message for r in recs)
    engine.service.close()


def test_overloaded_workload_leads_with_high_priority():
    items, transitions = _noon_items()
    active = [make_item(f"A-{i}", status="In Progress") for i in range(14)]
    engine = _engine(items, transitions, active)
    recs = engine.get_recommendation("me", "Is my load too much?")
    assert recs[0].priority == "high"
    assert recs[0].type == "workload"
    assert [r.priority for r in recs] == sorted(
        (r.priority for r in recs), key={"high": 0, "medium": 1, "low": 2}.get
    )
    engine.service.close()


def test_reviewer_suggests_fast_teammate():
    items, transitions = _noon_items()
    for item in items[:8]:
        handoff = TransitionEvent(
            timestamp=item.created, actor="bob", field="assignee", from_value="bob", to_value="me"
        )
        transitions[item.key] = [handoff] + lifecycle(item, 1.0)
    for item in items[8:]:
        transitions[item.key] = lifecycle(item, 3.0)
    engine = _engine(items, transitions)
    recs = engine.get_recommendation("me", "Who should review my PR?")
    assert recs[0].type == "reviewer"
    assert recs[0].priority == "high"
    assert "Ask bob to review" in recs[0].message
    engine.service.close()


def test_reviewer_without_history_is_informational():
    engine = _engine(*_noon_items(3))
    recs = engine.get_recommendation("me", "who should review this")
    assert len(recs) == 1
    assert recs[0].actionable is False
    engine.service.close()


def test_general_request_merges_every_analyzer():
    engine = _engine(*_noon_items())
    results = engine.run_all("me")
    assert set(results) == {"timing", "load", "strengths", "trends", "burnout", "collaboration", "prediction"}
    recs = engine.get_recommendation("me", "How am I doing?")
    assert recs
    assert any(r.type == "general" and "peak hours" in r.message for r in recs)
    engine.service.close()
