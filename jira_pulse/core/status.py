"""Status normalization and categorization utilities.

All derivation rules work on workflow categories rather than raw Jira status
names. The mapping lives in ``config.STATUS_ALIASES`` so sites with custom
workflows only need to extend that table.
"""

from __future__ import annotations

from .config import STATUS_ALIASES

OPEN = "open"
IN_PROGRESS = "in_progress"
REVIEW = "review"
DONE = "done"
UNKNOWN = "unknown"

# Categories that count as "work resumed" after a done transition
REOPEN_CATEGORIES: frozenset[str] = frozenset({OPEN, IN_PROGRESS})


def normalize_workflow_status(value: str | None) -> str:
    """Map a raw Jira status to its workflow category.

    Parameters
    ----------
    value : str | None
        Raw status string from Jira.

    Returns
    -------
    str
        One of ``open``, ``in_progress``, ``review``, ``done`` or ``unknown``.

    Examples
    --------
    >>> normalize_workflow_status("In Development")
    'in_progress'
    >>> normalize_workflow_status("Resolved")
    'done'
    >>> normalize_workflow_status("Waiting for vendor")
    'unknown'
    """
    if not value:
        return UNKNOWN
    text = " ".join(str(value).strip().lower().split())
    return STATUS_ALIASES.get(text, UNKNOWN)


def is_in_progress(value: str | None) -> bool:
    return normalize_workflow_status(value) == IN_PROGRESS


def is_review(value: str | None) -> bool:
    return normalize_workflow_status(value) == REVIEW


def is_done(value: str | None) -> bool:
    return normalize_workflow_status(value) == DONE


def is_active(value: str | None) -> bool:
    """True for statuses that count toward someone's current workload."""
    return normalize_workflow_status(value) in {IN_PROGRESS, REVIEW}
