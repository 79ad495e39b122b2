from datetime import timedelta

import pytest

from builders import NOW, analyzed, at, make_item
from jira_pulse.analytics.load import (
    CRITICAL,
    OPTIMAL,
    OVER,
    UNDER,
    analyze_load,
    concurrent_loads,
    load_zone,
    with_current_load,
)
from jira_pulse.analytics.metrics.quality import items_to_dataframe
from jira_pulse.core.results import InsufficientData, LoadResult


def test_zones_partition_counts():
    expected = {0: UNDER, 4: UNDER, 5: OPTIMAL, 9: OPTIMAL, 10: OVER, 12: OVER, 13: CRITICAL, 40: CRITICAL}
    for load, zone in expected.items():
        assert load_zone(load) == zone
    zones = [load_zone(n) for n in range(60)]
    # Each zone is one contiguous run, in order
    runs = [z for i, z in enumerate(zones) if i == 0 or zones[i - 1] != z]
    assert runs == [UNDER, OPTIMAL, OVER, CRITICAL]


def test_three_mutually_overlapping_items_each_see_three():
    items = [
        make_item("A", created=at(10), resolved=at(5)),
        make_item("B", created=at(9), resolved=at(4)),
        make_item("C", created=at(8), resolved=at(3)),
    ]
    df = items_to_dataframe([analyzed(i, cycle=1.0) for i in items])
    assert concurrent_loads(df, NOW) == [3, 3, 3]


def test_disjoint_and_open_items():
    items = [
        make_item("A", created=at(30), resolved=at(25)),
        make_item("B", created=at(20), resolved=None, status="In Progress"),
        make_item("C", created=at(2), resolved=at(1)),
    ]
    df = items_to_dataframe([analyzed(i) for i in items])
    # B stays open until now, so it overlaps C but never A
    assert concurrent_loads(df, NOW) == [1, 2, 2]


def test_touching_intervals_do_not_overlap():
    boundary = at(5)
    items = [
        make_item("A", created=at(10), resolved=boundary),
        make_item("B", created=boundary, resolved=at(1)),
    ]
    df = items_to_dataframe([analyzed(i) for i in items])
    assert concurrent_loads(df, NOW) == [1, 1]


def _history(n=12):
    items = []
    for i in range(n):
        created = at(100 - i * 7)
        item = make_item(f"H-{i}", created=created, resolved=created + timedelta(days=3))
        items.append(analyzed(item, 3.0))
    return items


def test_analyze_load_reports_current_zone_and_curve():
    result = analyze_load("me", _history(), active_count=11, now=NOW)
    assert isinstance(result, LoadResult)
    assert result.current_load == 11
    assert result.current_status == OVER
    assert (result.optimal_min, result.optimal_max) == (5, 9)
    assert result.avg_load == pytest.approx(1.0)
    assert [lvl.load for lvl in result.curve] == [1]
    assert result.curve[0].score == pytest.approx(1 / 3)
    assert "Finish or hand off 2" in result.recommendations[0]


def test_with_current_load_refreshes_live_fields():
    cached = analyze_load("me", _history(), active_count=3, now=NOW)
    assert cached.current_status == UNDER
    fresh = with_current_load(cached, 14)
    assert fresh.current_status == CRITICAL
    assert fresh.curve == cached.curve
    assert cached.current_load == 3
    assert any("critical" in rec for rec in fresh.recommendations)


def test_too_few_items_is_insufficient():
    result = analyze_load("me", _history(4), active_count=2, now=NOW)
    assert isinstance(result, InsufficientData)
    assert result.confidence == "low"
    assert result.analyzer == "load"
