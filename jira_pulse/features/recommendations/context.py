"""Request classification and the recommendation data types (no I/O)."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

TICKET_SELECTION = "ticket_selection"
TIMING = "timing"
WORKLOAD = "workload"
REVIEWER = "reviewer"
GENERAL = "general"

# Checked in order; the first category with a matching keyword wins
CONTEXT_KEYWORDS: Sequence[tuple[str, Sequence[str]]] = (
    (TICKET_SELECTION, ("ticket", "task", "pick", "choose")),
    (TIMING, ("time", "when", "deploy", "commit")),
    (WORKLOAD, ("load", "capacity", "too much", "overload")),
    (REVIEWER, ("review", "reviewer", "who should")),
)

PRIORITY_ORDER: dict[str, int] = {"high": 0, "medium": 1, "low": 2}


@dataclass(slots=True)
class Recommendation:
    type: str
    priority: str
    message: str
    reasoning: str = ""
    actionable: bool = True
    actions: list[str] = field(default_factory=list)


@dataclass(slots=True)
class StatusSnapshot:
    hour: int
    time_zone: str  # "peak", "danger" or "normal"
    load_zone: str | None
    active_items: int | None
    message: str


def classify_context(text: str | None) -> str:
    """Route a free-text request to a recommendation category.

    Examples
    --------
    >>> classify_context("Which ticket should I pick next?")
    'ticket_selection'
    >>> classify_context("Am I carrying too much?")
    'workload'
    >>> classify_context("hello")
    'general'
    """
    lowered = (text or "").lower()
    for category, keywords in CONTEXT_KEYWORDS:
        if any(word in lowered for word in keywords):
            return category
    return GENERAL


def rank(recommendations: Sequence[Recommendation]) -> list[Recommendation]:
    """Order by priority, keeping the original order within a tier."""
    return sorted(recommendations, key=lambda r: PRIORITY_ORDER.get(r.priority, len(PRIORITY_ORDER)))
