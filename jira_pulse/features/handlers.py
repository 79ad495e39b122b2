"""Action handler table: the request/response surface over the analyzers.

Every handler returns ``{"success": True, "data": ...}`` or
``{"success": False, "error": "..."}``; nothing raises to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from jira_pulse.core.cache import AnalysisCache
from jira_pulse.core.config import DEFAULT_TIME_RANGE, JiraSettings
from jira_pulse.core.errors import InvalidRequestError
from jira_pulse.core.jira_client import JiraAPI
from jira_pulse.core.service import InsightsService
from jira_pulse.core.source import JiraIssueSource
from jira_pulse.core.store import MemoryStore, SQLiteStore
from jira_pulse.features.recommendations import RecommendationEngine

logger = logging.getLogger(__name__)

Handler = Callable[[str, Mapping[str, Any]], Any]


def to_payload(value: Any) -> Any:
    """Convert result dataclasses into JSON-friendly structures."""
    if is_dataclass(value) and not isinstance(value, type):
        return to_payload(asdict(value))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_payload(v) for v in value]
    return value


TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


def _flag(payload: Mapping[str, Any], name: str, default: bool) -> bool:
    """Read a boolean option; strings such as ``"false"`` are parsed, not truth-tested."""
    value = payload.get(name, default)
    if value is None:
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
        raise InvalidRequestError(f"{name} must be true or false, got {value!r}")
    return bool(value)


def _options(payload: Mapping[str, Any]) -> dict[str, Any]:
    timeout = payload.get("timeout")
    return {
        "bypass_cache": _flag(payload, "bypass_cache", False),
        "timeout": float(timeout) if timeout is not None else None,
    }


class ActionHandler:
    def __init__(self, service: InsightsService, engine: RecommendationEngine | None = None):
        self.service = service
        self.engine = engine or RecommendationEngine(service)
        self.actions: dict[str, Handler] = {
            "analyze_timing": self._timing,
            "analyze_load": self._load,
            "analyze_strengths": self._strengths,
            "analyze_trends": self._trends,
            "assess_burnout": self._burnout,
            "analyze_collaboration": self._collaboration,
            "predict_sprint": self._prediction,
            "get_recommendation": self._recommendation,
            "current_status": self._status,
            "cache_info": self._cache_info,
            "clear_cache": self._clear_cache,
        }

    def handle(
        self, action: str, subject_id: str, payload: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        handler = self.actions.get(action)
        if handler is None:
            return {"success": False, "error": f"Unknown action: {action}"}
        if not subject_id or not str(subject_id).strip():
            return {"success": False, "error": "A subject id is required"}
        try:
            data = handler(str(subject_id).strip(), payload or {})
        except (InvalidRequestError, ValueError, TypeError) as exc:
            return {"success": False, "error": str(exc)}
        except Exception as exc:
            logger.exception("Action %s failed for %s", action, subject_id)
            return {"success": False, "error": f"{action} failed: {exc}"}
        return {"success": True, "data": to_payload(data)}

    # ------------------ Handlers ------------------
    def _timing(self, subject_id: str, payload: Mapping[str, Any]):
        time_range = payload.get("time_range") or DEFAULT_TIME_RANGE
        return self.service.timing(subject_id, str(time_range), **_options(payload))

    def _load(self, subject_id: str, payload: Mapping[str, Any]):
        return self.service.load(subject_id, **_options(payload))

    def _strengths(self, subject_id: str, payload: Mapping[str, Any]):
        compare = _flag(payload, "compare_to_team", True)
        return self.service.strengths(subject_id, compare, **_options(payload))

    def _trends(self, subject_id: str, payload: Mapping[str, Any]):
        months = int(payload.get("months", 6))
        if months < 1:
            raise InvalidRequestError("months must be at least 1")
        return self.service.trends(subject_id, months, **_options(payload))

    def _burnout(self, subject_id: str, payload: Mapping[str, Any]):
        return self.service.burnout(subject_id, **_options(payload))

    def _collaboration(self, subject_id: str, payload: Mapping[str, Any]):
        return self.service.collaboration(subject_id, **_options(payload))

    def _prediction(self, subject_id: str, payload: Mapping[str, Any]):
        days = payload.get("days_remaining")
        if days is not None and float(days) < 0:
            raise InvalidRequestError("days_remaining cannot be negative")
        return self.service.prediction(
            subject_id, float(days) if days is not None else None, **_options(payload)
        )

    def _recommendation(self, subject_id: str, payload: Mapping[str, Any]):
        context = payload.get("context")
        return self.engine.get_recommendation(subject_id, context, **_options(payload))

    def _status(self, subject_id: str, payload: Mapping[str, Any]):
        return self.engine.status(subject_id)

    def _cache_info(self, subject_id: str, payload: Mapping[str, Any]):
        namespace = payload.get("namespace")
        if not namespace:
            raise InvalidRequestError("namespace is required")
        return self.service.cache.metadata(str(namespace), subject_id)

    def _clear_cache(self, subject_id: str, payload: Mapping[str, Any]):
        namespace = payload.get("namespace")
        self.service.invalidate(subject_id, str(namespace) if namespace else None)
        return {"cleared": namespace or "all"}


def create_handler(cache_path: Path | str | None = None) -> ActionHandler:
    """Wire the Jira-backed handler from ``JIRA_*`` environment variables."""
    api = JiraAPI.from_settings(JiraSettings.from_env())
    store = SQLiteStore(cache_path) if cache_path else MemoryStore()
    service = InsightsService(JiraIssueSource(api), AnalysisCache(store))
    return ActionHandler(service)
