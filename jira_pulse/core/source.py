"""Issue source interface and the Jira-backed adapter."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .config import CLOSED_STATUS_NAMES, JIRA_FETCH_BASE_FIELDS
from .jira_client import JiraAPI
from .mappers import map_transitions, map_work_item
from .models import TransitionEvent, WorkItem

logger = logging.getLogger(__name__)


@runtime_checkable
class IssueSource(Protocol):
    """What the analytics core needs from an issue tracker.

    Pagination and retry belong to the implementation. Callers treat any
    exception raised here as "zero results".
    """

    def fetch_items(self, subject_id: str, since_days: int) -> list[WorkItem]: ...

    def fetch_active_items(self, subject_id: str) -> list[WorkItem]: ...

    def fetch_transitions(self, item_id: str) -> list[TransitionEvent]: ...

    def fetch_team_items(self, project_ids: Sequence[str], since_days: int) -> list[WorkItem]: ...


def _quote(value: str) -> str:
    return '"' + str(value).replace("\\", "\\\\").replace('"', '\\"') + '"'


class JiraIssueSource:
    """``IssueSource`` over the REST v3 ``JiraAPI`` wrapper."""

    def __init__(self, api: JiraAPI, fields: Sequence[str] = JIRA_FETCH_BASE_FIELDS):
        self.api = api
        self.fields = list(fields)

    def _search(self, jql: str) -> list[WorkItem]:
        raw = self.api.search_enhanced(jql, fields=self.fields)
        items = [map_work_item(r) for r in raw]
        logger.debug("JQL %r returned %d items", jql, len(items))
        return items

    def fetch_items(self, subject_id: str, since_days: int) -> list[WorkItem]:
        # WAS keeps items the subject worked on and then handed off
        jql = f"assignee WAS {_quote(subject_id)} AND updated >= -{int(since_days)}d ORDER BY updated DESC"
        return self._search(jql)

    def fetch_active_items(self, subject_id: str) -> list[WorkItem]:
        closed = ", ".join(_quote(s) for s in CLOSED_STATUS_NAMES)
        jql = f"assignee = {_quote(subject_id)} AND status NOT IN ({closed}) ORDER BY updated DESC"
        return self._search(jql)

    def fetch_transitions(self, item_id: str) -> list[TransitionEvent]:
        raw = self.api.fetch_issue_raw(item_id)
        return map_transitions(raw)

    def fetch_team_items(self, project_ids: Sequence[str], since_days: int) -> list[WorkItem]:
        projects = [p for p in project_ids if p]
        if not projects:
            return []
        project_clause = ", ".join(_quote(p) for p in projects)
        jql = (
            f"project IN ({project_clause}) AND statusCategory = Done "
            f"AND resolved >= -{int(since_days)}d ORDER BY resolved DESC"
        )
        return self._search(jql)
