"""Code-hosting client placeholder.

Only the interface exists: every call returns an empty list so reviewer
recommendations fall back to issue-tracker collaboration data.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class CodeHostClient:
    def __init__(self, base_url: str | None = None, token: str | None = None):
        self.base_url = base_url
        self.token = token

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.token)

    def commits(self, subject_id: str, since_days: int = 30) -> list[dict[str, Any]]:
        logger.debug("Commit lookup for %s skipped: code host not integrated", subject_id)
        return []

    def pull_requests(self, subject_id: str, since_days: int = 30) -> list[dict[str, Any]]:
        logger.debug("Pull request lookup for %s skipped: code host not integrated", subject_id)
        return []

    def reviews(self, subject_id: str, since_days: int = 30) -> list[dict[str, Any]]:
        logger.debug("Review lookup for %s skipped: code host not integrated", subject_id)
        return []
