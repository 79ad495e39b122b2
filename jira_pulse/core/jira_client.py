"""Jira API client wrapper (REST v3 + enhanced search pagination)."""

from __future__ import annotations

from typing import Any

from jira import JIRA, JIRAError

from .config import SETTINGS, JiraSettings

SEARCH_PATH = "/rest/api/3/search/jql"


class JiraAPI:
    """The two calls the issue source needs: paged JQL search and one issue with its changelog.

    Every HTTP call is bounded by ``timeout`` seconds so a stalled request
    frees its worker instead of holding it indefinitely.
    """

    def __init__(self, server: str, email: str, token: str, *, timeout: float | None = None):
        self.server = server.rstrip("/")
        self.timeout = SETTINGS.request_timeout_seconds if timeout is None else timeout
        self.client = JIRA(
            basic_auth=(email, token),
            options={"server": self.server, "rest_api_version": "3"},
            timeout=self.timeout,
        )

    @classmethod
    def from_settings(cls, settings: JiraSettings, timeout: float | None = None) -> JiraAPI:
        return cls(settings.server, settings.email, settings.token, timeout=timeout)

    def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        # /search/jql (token paging) is not wrapped by every jira release we support,
        # so it goes through the client's authenticated session directly
        session = getattr(self.client, "_session", None)
        if session is None:
            raise RuntimeError("JIRA session unavailable")
        try:
            resp = session.get(f"{self.server}{path}", params=params, timeout=self.timeout)
        except JIRAError as exc:
            raise RuntimeError(f"GET {path} failed: {exc}") from exc
        if resp.status_code >= 400:
            raise RuntimeError(f"GET {path} failed {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    def search_enhanced(
        self,
        jql: str,
        fields: list[str] | None = None,
        expand: list[str] | None = None,
        page_size: int = 100,
    ) -> list[dict[str, Any]]:
        """Run a JQL search, following ``nextPageToken`` until the last page."""
        params: dict[str, Any] = {"jql": jql, "maxResults": page_size}
        if fields:
            params["fields"] = ",".join(fields)
        if expand:
            params["expand"] = ",".join(expand)
        issues: list[dict[str, Any]] = []
        token = None
        while True:
            page = self._get_json(SEARCH_PATH, {**params, "nextPageToken": token} if token else params)
            issues.extend(page.get("issues", []))
            token = page.get("nextPageToken")
            if not token or page.get("isLast") is True:
                return issues

    def fetch_issue_raw(self, issue_key: str) -> dict[str, Any]:
        try:
            issue = self.client.issue(issue_key, expand="changelog")
        except JIRAError as exc:
            raise RuntimeError(f"Failed to fetch issue {issue_key}: {exc}") from exc
        raw = getattr(issue, "raw", issue)
        if not isinstance(raw, dict):
            raise RuntimeError(f"Unexpected issue payload type for {issue_key}: {type(issue)!r}")
        return raw
