"""Point-in-time working status built from timing and load results."""

from __future__ import annotations

from datetime import datetime

import pytz

from jira_pulse.core.config import TIMEZONE
from jira_pulse.core.results import InsufficientData, LoadResult, TimingResult
from jira_pulse.features.recommendations.context import StatusSnapshot


def current_status(
    timing: TimingResult | InsufficientData | None,
    load: LoadResult | InsufficientData | None,
    now: datetime,
    tz: str = TIMEZONE,
) -> StatusSnapshot:
    hour = now.astimezone(pytz.timezone(tz)).hour
    zone = "normal"
    if isinstance(timing, TimingResult):
        if timing.peak.start_hour <= hour < timing.peak.end_hour:
            zone = "peak"
        elif timing.danger is not None and timing.danger.contains(hour):
            zone = "danger"

    load_zone = load.current_status if isinstance(load, LoadResult) else None
    active = load.current_load if isinstance(load, LoadResult) else None

    if zone == "peak":
        message = "You're in your peak hours: tackle the hardest item now."
    elif zone == "danger":
        message = "You're in your low-quality hours: stick to routine work and avoid risky changes."
    else:
        message = "Normal working hours: good time for steady progress."
    if load_zone in {"over", "critical"}:
        message += f" You have {active} active items; finish before starting more."
    return StatusSnapshot(
        hour=hour, time_zone=zone, load_zone=load_zone, active_items=active, message=message
    )
