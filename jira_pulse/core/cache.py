"""Versioned TTL cache for analyzer results.

Entries are pickled whole and stored under ``user:<subject>:<namespace>``
(plus an optional ``:<suffix>`` for parameterized analyses). A read returns
``None`` for a missing key, an undecodable value, a schema version mismatch,
or an expired entry; callers treat all four as a miss and recompute.
"""

from __future__ import annotations

import logging
import pickle
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from .config import CACHE_NAMESPACES, CACHE_VERSION, DEFAULT_TTL_HOURS
from .errors import CacheWriteError
from .models import CacheEntry
from .store import MemoryStore, PersistentStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def cache_key(namespace: str, subject_id: str, suffix: str | None = None) -> str:
    key = f"user:{subject_id}:{namespace}"
    if suffix:
        key = f"{key}:{suffix}"
    return key


class AnalysisCache:
    def __init__(
        self,
        store: PersistentStore | None = None,
        *,
        clock: Clock = utc_now,
        version: str = CACHE_VERSION,
    ):
        self.store = store if store is not None else MemoryStore()
        self.clock = clock
        self.version = version
        # Suffixed keys written by this process, so invalidate_all can reach them
        self._written: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    # ------------------ Internal Helpers ------------------
    def _load(self, key: str) -> CacheEntry | None:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            entry = pickle.loads(raw)
        except Exception as exc:
            logger.warning("Discarding undecodable cache entry %s: %s", key, exc)
            self.store.delete(key)
            return None
        if not isinstance(entry, CacheEntry):
            logger.warning("Discarding cache entry %s with unexpected type %s", key, type(entry).__name__)
            self.store.delete(key)
            return None
        if entry.version != self.version:
            logger.debug("Cache version mismatch for %s: %s != %s", key, entry.version, self.version)
            self.store.delete(key)
            return None
        return entry

    def _age_hours(self, entry: CacheEntry) -> float:
        return (self.clock() - entry.computed_at).total_seconds() / 3600.0

    # ------------------ Public API ------------------
    def get(self, namespace: str, subject_id: str, suffix: str | None = None) -> Any | None:
        key = cache_key(namespace, subject_id, suffix)
        entry = self._load(key)
        if entry is None:
            logger.debug("Cache miss: %s", key)
            return None
        age = self._age_hours(entry)
        if age > entry.ttl_hours:
            logger.debug("Cache expired: %s (age %.2fh > ttl %.2fh)", key, age, entry.ttl_hours)
            return None
        logger.debug("Cache hit: %s (age %.2fh)", key, age)
        return entry.payload

    def set(
        self,
        namespace: str,
        subject_id: str,
        payload: Any,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        suffix: str | None = None,
    ) -> None:
        key = cache_key(namespace, subject_id, suffix)
        entry = CacheEntry(
            payload=payload, computed_at=self.clock(), ttl_hours=ttl_hours, version=self.version
        )
        try:
            data = pickle.dumps(entry, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as exc:
            raise CacheWriteError(f"Cannot serialize cache entry {key}: {exc}") from exc
        self.store.set(key, data)
        if suffix:
            with self._lock:
                self._written.setdefault(subject_id, set()).add(key)
        logger.debug("Cache set: %s (ttl %.2fh)", key, ttl_hours)

    def invalidate(self, namespace: str, subject_id: str, suffix: str | None = None) -> None:
        key = cache_key(namespace, subject_id, suffix)
        self.store.delete(key)
        logger.debug("Cache invalidated: %s", key)

    def invalidate_all(self, subject_id: str) -> None:
        for namespace in CACHE_NAMESPACES:
            self.store.delete(cache_key(namespace, subject_id))
        with self._lock:
            extra = self._written.pop(subject_id, set())
        for key in extra:
            self.store.delete(key)
        logger.info("Cleared cached analyses for %s", subject_id)

    def metadata(self, namespace: str, subject_id: str, suffix: str | None = None) -> dict[str, Any]:
        """Describe the stored entry without applying the TTL check."""
        entry = self._load(cache_key(namespace, subject_id, suffix))
        if entry is None:
            return {"exists": False, "age_hours": None, "ttl_hours": None, "version": None, "expired": None}
        age = self._age_hours(entry)
        return {
            "exists": True,
            "age_hours": age,
            "ttl_hours": entry.ttl_hours,
            "version": entry.version,
            "expired": age > entry.ttl_hours,
        }
