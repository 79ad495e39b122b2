import pytest

from builders import NOW, analyzed, at, make_item
from jira_pulse.analytics.timing import (
    analyze_timing,
    find_danger_zone,
    find_peak_window,
    hourly_quality,
)
from jira_pulse.core.results import HourStat, InsufficientData, TimingResult


def _hourly(overrides):
    """24 neutral hours with ``{hour: (volume, quality)}`` overrides."""
    stats = [HourStat(hour=h, volume=0, quality=5.0) for h in range(24)]
    for hour, (volume, quality) in overrides.items():
        stats[hour] = HourStat(hour=hour, volume=volume, quality=quality)
    return stats


def test_empty_hours_are_neutral():
    import pandas as pd

    stats = hourly_quality(pd.DataFrame(columns=["ts", "quality"]))
    assert len(stats) == 24
    assert all(s.quality == 5.0 and s.volume == 0 for s in stats)


def test_peak_window_spans_top_three_eligible_hours():
    hourly = _hourly({9: (6, 10.0), 10: (6, 9.5), 14: (8, 9.0), 15: (2, 10.0), 16: (6, 4.0)})
    peak = find_peak_window(hourly)
    # Hour 15 has the best score but too little volume to count
    assert (peak.start_hour, peak.end_hour) == (9, 15)
    overall = sum(h.quality for h in hourly) / 24
    assert peak.quality_multiplier == pytest.approx(((10.0 + 9.5 + 9.0) / 3) / overall)


def test_no_eligible_hour_defaults_to_late_morning():
    peak = find_peak_window(_hourly({3: (2, 10.0)}))
    assert (peak.start_hour, peak.end_hour, peak.quality_multiplier) == (10, 12, 1.0)


def test_danger_zone_reported_only_when_clearly_worse():
    hourly = _hourly({9: (6, 10.0), 10: (6, 10.0), 11: (6, 10.0), 17: (6, 4.0), 18: (6, 5.0)})
    danger = find_danger_zone(hourly)
    assert (danger.start_hour, danger.end_hour) == (17, 19)
    mean = (10 * 3 + 4 + 5) / 5
    assert danger.revert_multiplier == pytest.approx(mean / 4.5)
    assert danger.contains(18) and not danger.contains(19)

    mild = _hourly({9: (6, 10.0), 10: (6, 10.0), 11: (6, 9.0), 17: (6, 8.5)})
    assert find_danger_zone(mild) is None


def test_analyze_timing_end_to_end():
    items = []
    for i in range(12):
        item = make_item(f"T-{i}", created=at(30), resolved=at(i + 1, hour=9), updated=at(i + 1, hour=9))
        items.append(analyzed(item, cycle=2.0))
    for i in range(6):
        item = make_item(f"L-{i}", created=at(30), resolved=at(i + 1, hour=22), updated=at(i + 1, hour=22))
        items.append(analyzed(item, cycle=4.0, reopened=True, defect=True))
    result = analyze_timing("me", items, now=NOW)
    assert isinstance(result, TimingResult)
    assert result.data_points == 18
    assert result.confidence == "medium"
    # Fewer than three eligible hours: the window spans both of them
    assert (result.peak.start_hour, result.peak.end_hour) == (9, 23)
    assert result.hourly[22].quality == pytest.approx(4.0)
    # Only two eligible hours: the danger zone would be the whole eligible set
    assert result.danger is None
    assert result.recommendations
    assert sum(d.volume for d in result.weekdays) == 18


def test_too_few_items_is_insufficient():
    items = [analyzed(make_item(f"X-{i}", resolved=at(i + 1)), cycle=1.0) for i in range(4)]
    result = analyze_timing("me", items, now=NOW)
    assert isinstance(result, InsufficientData)
    assert result.confidence == "low"
    assert result.required == 10
    assert result.analyzer == "timing"
