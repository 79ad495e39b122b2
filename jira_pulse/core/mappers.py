"""Mapping raw Jira issue JSON into WorkItem and TransitionEvent instances."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pandas as pd

from .config import STORY_POINTS_FIELD
from .models import TransitionEvent, WorkItem

# Fields where the stable identifier (``from``/``to``) matters more than the label
ID_VALUED_FIELDS: frozenset[str] = frozenset({"assignee"})


def parse_dt(val: Any) -> datetime | None:
    if not val:
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _parse_points(val: Any) -> float | None:
    if val is None:
        return None
    try:
        points = float(val)
    except (TypeError, ValueError):
        return None
    if pd.isna(points):
        return None
    return points


def _name(node: Any, attr: str = "name") -> str | None:
    if isinstance(node, dict):
        value = node.get(attr)
        return str(value) if value is not None else None
    return None


def map_work_item(raw: dict[str, Any]) -> WorkItem:
    fields = raw.get("fields") or {}
    assignee = fields.get("assignee") or {}
    components = frozenset(
        c["name"] for c in (fields.get("components") or []) if isinstance(c, dict) and c.get("name")
    )
    return WorkItem(
        key=raw.get("key") or "",
        issuetype=_name(fields.get("issuetype")),
        status=_name(fields.get("status")),
        assignee_id=assignee.get("accountId") or assignee.get("name"),
        assignee=assignee.get("displayName"),
        created=parse_dt(fields.get("created")),
        updated=parse_dt(fields.get("updated")),
        resolved=parse_dt(fields.get("resolutiondate")),
        story_points=_parse_points(fields.get(STORY_POINTS_FIELD)),
        components=components,
        labels=tuple(str(lbl) for lbl in (fields.get("labels") or []) if lbl),
        project=_name(fields.get("project"), "key"),
        summary=fields.get("summary"),
    )


def map_transitions(raw: dict[str, Any]) -> list[TransitionEvent]:
    """Flatten a changelog into per-field transition events, oldest first.

    Histories without a parseable timestamp are dropped. For assignee changes
    the account ids are kept so hand-offs can be matched against identities;
    every other field keeps the human-readable value.
    """
    histories = (raw.get("changelog") or {}).get("histories") or []
    events: list[TransitionEvent] = []
    for history in histories:
        created = parse_dt(history.get("created"))
        if created is None:
            continue
        author = history.get("author") or {}
        actor = author.get("accountId") or author.get("displayName")
        for item in history.get("items") or []:
            field_name = str(item.get("field") or "").strip().lower()
            if not field_name:
                continue
            if field_name in ID_VALUED_FIELDS:
                from_value = item.get("from") or item.get("fromString")
                to_value = item.get("to") or item.get("toString")
            else:
                from_value = item.get("fromString")
                to_value = item.get("toString")
            events.append(
                TransitionEvent(
                    timestamp=created,
                    actor=actor,
                    field=field_name,
                    from_value=from_value,
                    to_value=to_value,
                )
            )
    events.sort(key=lambda e: e.timestamp)
    return events
