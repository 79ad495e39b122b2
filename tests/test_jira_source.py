from types import SimpleNamespace

from jira_pulse.core.jira_client import SEARCH_PATH, JiraAPI
from jira_pulse.core.source import IssueSource, JiraIssueSource


class DummyAPI(JiraAPI):
    def __init__(self):
        self.server = "https://example.atlassian.net"
        self.queries = []

    def search_enhanced(self, jql, fields=None, expand=None, page_size=100):
        self.queries.append(jql)
        return [
            {
                "key": "OBS-1",
                "fields": {
                    "summary": "Test",
                    "created": "2024-09-01T10:00:00.000+0000",
                    "updated": "2024-09-02T10:00:00.000+0000",
                    "resolutiondate": "2024-09-03T16:00:00.000+0000",
                    "assignee": {"accountId": "acc-1", "displayName": "Alice"},
                    "status": {"name": "Done"},
                    "issuetype": {"name": "Bug"},
                    "customfield_10016": None,
                    "components": [],
                    "labels": ["x"],
                    "project": {"key": "OBS"},
                },
            }
        ]

    def fetch_issue_raw(self, issue_key):
        return {
            "key": issue_key,
            "fields": {},
            "changelog": {
                "histories": [
                    {
                        "author": {"accountId": "acc-1"},
                        "created": "2024-09-02T10:00:00.000+0000",
                        "items": [{"field": "Status", "fromString": "To Do", "toString": "In Progress"}],
                    }
                ]
            },
        }


def test_source_satisfies_protocol():
    assert isinstance(JiraIssueSource(DummyAPI()), IssueSource)


def test_fetch_items_maps_and_scopes_jql():
    api = DummyAPI()
    items = JiraIssueSource(api).fetch_items("acc-1", 90)
    assert [i.key for i in items] == ["OBS-1"]
    assert items[0].resolved is not None
    assert items[0].story_points is None
    # Items later handed to a teammate still belong to the subject's history
    assert api.queries == ['assignee WAS "acc-1" AND updated >= -90d ORDER BY updated DESC']


def test_active_items_exclude_closed_statuses():
    api = DummyAPI()
    JiraIssueSource(api).fetch_active_items("acc-1")
    assert api.queries == [
        'assignee = "acc-1" AND status NOT IN ("Done", "Closed", "Resolved") ORDER BY updated DESC'
    ]


def test_team_items_skip_search_without_projects():
    api = DummyAPI()
    source = JiraIssueSource(api)
    assert source.fetch_team_items([], 180) == []
    assert api.queries == []
    source.fetch_team_items(["OBS", "WEB"], 180)
    assert api.queries[0].startswith('project IN ("OBS", "WEB") AND statusCategory = Done')


def test_fetch_transitions_reads_changelog():
    events = JiraIssueSource(DummyAPI()).fetch_transitions("OBS-1")
    assert len(events) == 1
    assert events[0].field == "status"
    assert events[0].to_value == "In Progress"


class RecordingSession:
    def __init__(self, pages):
        self.pages = list(pages)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {}), timeout))
        page = self.pages.pop(0)
        return SimpleNamespace(status_code=200, text="", json=lambda: page)


def _api_with_session(session, timeout=7.5):
    api = JiraAPI.__new__(JiraAPI)
    api.server = "https://example.atlassian.net"
    api.timeout = timeout
    api.client = SimpleNamespace(_session=session)
    return api


def test_enhanced_search_follows_page_tokens_within_request_timeout():
    session = RecordingSession(
        [
            {"issues": [{"key": "OBS-1"}], "nextPageToken": "t2"},
            {"issues": [{"key": "OBS-2"}], "isLast": True},
        ]
    )
    api = _api_with_session(session)
    issues = api.search_enhanced("project = OBS", fields=["summary", "status"])
    assert [i["key"] for i in issues] == ["OBS-1", "OBS-2"]
    urls = {url for url, _, _ in session.calls}
    assert urls == {"https://example.atlassian.net" + SEARCH_PATH}
    assert "nextPageToken" not in session.calls[0][1]
    assert session.calls[1][1]["nextPageToken"] == "t2"
    assert session.calls[0][1]["fields"] == "summary,status"
    assert all(timeout == 7.5 for _, _, timeout in session.calls)
