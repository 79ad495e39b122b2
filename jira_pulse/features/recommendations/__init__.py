"""Recommendation feature module: merges analyzer output into ranked advice."""

from jira_pulse.features.recommendations.context import (
    Recommendation,
    StatusSnapshot,
    classify_context,
    rank,
)
from jira_pulse.features.recommendations.engine import RecommendationEngine, leading_advice
from jira_pulse.features.recommendations.status import current_status

__all__ = [
    "Recommendation",
    "RecommendationEngine",
    "StatusSnapshot",
    "classify_context",
    "current_status",
    "leading_advice",
    "rank",
]
