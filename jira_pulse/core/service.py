"""InsightsService: orchestrates fetching, metric derivation, caching, and analyzers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Any, TypeVar

import numpy as np

from jira_pulse.analytics.burnout import analyze_burnout
from jira_pulse.analytics.collaboration import analyze_collaboration
from jira_pulse.analytics.load import analyze_load, with_current_load, with_stale_load
from jira_pulse.analytics.metrics.derivation import derive_metrics
from jira_pulse.analytics.prediction import analyze_prediction
from jira_pulse.analytics.strengths import analyze_strengths
from jira_pulse.analytics.timing import analyze_timing
from jira_pulse.analytics.trends import analyze_trends

from .cache import AnalysisCache
from .config import (
    BURNOUT_HISTORY_DAYS,
    DEFAULT_TIME_RANGE,
    HISTORY_DAYS,
    NAMESPACE_TTL_HOURS,
    PREDICTION_HISTORY_DAYS,
    SETTINGS,
    TIMEZONE,
    AnalyzerSettings,
    resolve_time_range,
)
from .models import AnalyzedItem, WorkItem
from .results import (
    AnalysisResult,
    BurnoutResult,
    CollaborationResult,
    InsufficientData,
    LoadResult,
    PredictionResult,
    StrengthResult,
    TimingResult,
    TrendResult,
    insufficient_data,
)
from .source import IssueSource

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=AnalysisResult)

DEFAULT_TREND_MONTHS = 6
DAYS_PER_MONTH = 30


class InsightsService:
    """Cache-first entry points for every analyzer.

    Each analyzer method takes ``bypass_cache`` to force recomputation and
    ``timeout`` (seconds) to bound the wall-clock wait; a timed-out call
    returns the cached result when one exists, else ``InsufficientData`` with
    ``reason="timeout"``.
    """

    def __init__(
        self,
        source: IssueSource,
        cache: AnalysisCache | None = None,
        *,
        settings: AnalyzerSettings = SETTINGS,
        tz: str = TIMEZONE,
        rng: np.random.Generator | None = None,
    ):
        self.source = source
        self.cache = cache if cache is not None else AnalysisCache()
        self.settings = settings
        self.tz = tz
        self.rng = rng
        # Long-lived so a timed-out computation can finish and still populate the cache
        self._analysis_pool = ThreadPoolExecutor(
            max_workers=settings.analysis_max_workers, thread_name_prefix="pulse-analysis"
        )

    def close(self) -> None:
        self._analysis_pool.shutdown(wait=False, cancel_futures=True)

    def now(self):
        return self.cache.clock()

    # ------------------ Fetch Methods ------------------
    def _fetch(self, label: str, fn: Callable[..., list], *args: Any) -> list:
        try:
            return list(fn(*args))
        except Exception as exc:
            logger.warning("Issue source %s failed for %s: %s", label, args[0] if args else "", exc)
            return []

    def fetch_items(self, subject_id: str, since_days: int) -> list[WorkItem]:
        return self._fetch("fetch_items", self.source.fetch_items, subject_id, since_days)

    def fetch_active_items(self, subject_id: str) -> list[WorkItem]:
        return self._fetch("fetch_active_items", self.source.fetch_active_items, subject_id)

    def active_count(self, subject_id: str) -> int:
        return len(self.fetch_active_items(subject_id))

    # ------------------ Derivation Pipeline ------------------
    def _analyze_one(self, item: WorkItem) -> AnalyzedItem:
        try:
            transitions = tuple(self.source.fetch_transitions(item.key))
            return AnalyzedItem(item=item, metrics=derive_metrics(item, transitions), transitions=transitions)
        except Exception as exc:
            logger.warning("Failed to derive metrics for %s: %s", item.key, exc)
            return AnalyzedItem(item=item)

    def analyze_items(self, items: Sequence[WorkItem]) -> list[AnalyzedItem]:
        """Fetch transitions and derive metrics for each item, preserving input order.

        Failures are isolated: an item whose transitions cannot be fetched or
        parsed gets zeroed metrics and the rest of the batch is unaffected.
        """
        if not items:
            return []
        if len(items) < self.settings.fetch_min_parallel:
            return [self._analyze_one(item) for item in items]

        results: list[AnalyzedItem | None] = [None] * len(items)
        with ThreadPoolExecutor(max_workers=self.settings.fetch_max_workers) as pool:
            futures = {pool.submit(self._analyze_one, item): idx for idx, item in enumerate(items)}
            for fut in as_completed(futures):
                idx = futures[fut]
                try:
                    results[idx] = fut.result()
                except Exception as exc:  # pragma: no cover
                    logger.warning("Derivation task failed for %s: %s", items[idx].key, exc)
                    results[idx] = AnalyzedItem(item=items[idx])
        logger.debug("Derived metrics for %d items", len(items))
        return [r for r in results if r is not None]

    def history(self, subject_id: str, since_days: int) -> list[AnalyzedItem]:
        return self.analyze_items(self.fetch_items(subject_id, since_days))

    # ------------------ Cache-first Runner ------------------
    def _run(
        self,
        namespace: str,
        subject_id: str,
        compute: Callable[[], R | InsufficientData],
        *,
        required: int,
        suffix: str | None = None,
        bypass_cache: bool = False,
        timeout: float | None = None,
        refresh: Callable[[Any], Any] | None = None,
        stale: Callable[[Any], Any] | None = None,
    ) -> Any:
        """Serve from cache or compute, within ``timeout`` seconds when given.

        ``refresh`` updates the live part of a result (cached or fresh) and
        counts against the same budget. When the budget runs out, a cached
        result is returned as stored, passed through ``stale`` if provided.
        """

        def finish(value):
            if refresh is None or isinstance(value, InsufficientData):
                return value
            return refresh(value)

        def as_stale(value):
            if stale is None or isinstance(value, InsufficientData):
                return value
            return stale(value)

        def compute_and_store():
            result = compute()
            # Low-data answers are not cached so new history shows up immediately
            if not isinstance(result, InsufficientData):
                self.cache.set(namespace, subject_id, result, NAMESPACE_TTL_HOURS[namespace], suffix)
            return result

        cached = None if bypass_cache else self.cache.get(namespace, subject_id, suffix)
        if timeout is None:
            return finish(cached if cached is not None else compute_and_store())

        if cached is not None:
            task = self._analysis_pool.submit(finish, cached)
        else:
            task = self._analysis_pool.submit(lambda: finish(compute_and_store()))
        try:
            return task.result(timeout=timeout)
        except FuturesTimeout:
            # Drops the task if it is still queued; a running one finishes in the background
            task.cancel()
            logger.warning("%s analysis for %s timed out after %.1fs", namespace, subject_id, timeout)
            if cached is None:
                cached = self.cache.get(namespace, subject_id, suffix)
            if cached is not None:
                return as_stale(cached)
            return insufficient_data(namespace, subject_id, 0, required, self.now(), reason="timeout")

    # ------------------ Analyzers ------------------
    def timing(
        self,
        subject_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        *,
        bypass_cache: bool = False,
        timeout: float | None = None,
    ) -> TimingResult | InsufficientData:
        days = resolve_time_range(time_range)

        def compute():
            items = self.history(subject_id, days)
            return analyze_timing(
                subject_id, items, time_range=time_range, settings=self.settings, tz=self.tz, now=self.now()
            )

        return self._run(
            "timing",
            subject_id,
            compute,
            required=self.settings.min_items_timing,
            suffix=None if time_range == DEFAULT_TIME_RANGE else time_range,
            bypass_cache=bypass_cache,
            timeout=timeout,
        )

    def load(
        self, subject_id: str, *, bypass_cache: bool = False, timeout: float | None = None
    ) -> LoadResult | InsufficientData:
        def compute():
            items = self.history(subject_id, HISTORY_DAYS)
            return analyze_load(
                subject_id, items, self.active_count(subject_id), settings=self.settings, now=self.now()
            )

        # The live active count is refetched on every read, stale only when the budget runs out
        return self._run(
            "load",
            subject_id,
            compute,
            required=self.settings.min_items_load,
            bypass_cache=bypass_cache,
            timeout=timeout,
            refresh=lambda cached: with_current_load(cached, self.active_count(subject_id), self.settings),
            stale=with_stale_load,
        )

    def strengths(
        self,
        subject_id: str,
        compare_to_team: bool = True,
        *,
        bypass_cache: bool = False,
        timeout: float | None = None,
    ) -> StrengthResult | InsufficientData:
        def compute():
            items = self.history(subject_id, HISTORY_DAYS)
            team = None
            if compare_to_team:
                projects = sorted({a.item.project for a in items if a.item.project})
                try:
                    team = list(self.source.fetch_team_items(projects, HISTORY_DAYS))
                except Exception as exc:
                    logger.warning("Team baseline unavailable for %s: %s", subject_id, exc)
            return analyze_strengths(
                subject_id,
                items,
                team,
                compare_to_team=compare_to_team,
                settings=self.settings,
                now=self.now(),
            )

        return self._run(
            "strengths",
            subject_id,
            compute,
            required=self.settings.min_items_strengths,
            suffix=None if compare_to_team else "solo",
            bypass_cache=bypass_cache,
            timeout=timeout,
        )

    def trends(
        self,
        subject_id: str,
        months: int = DEFAULT_TREND_MONTHS,
        *,
        bypass_cache: bool = False,
        timeout: float | None = None,
    ) -> TrendResult | InsufficientData:
        def compute():
            items = self.history(subject_id, months * DAYS_PER_MONTH)
            return analyze_trends(
                subject_id, items, months=months, settings=self.settings, tz=self.tz, now=self.now()
            )

        return self._run(
            "trends",
            subject_id,
            compute,
            required=self.settings.min_items_trends,
            suffix=None if months == DEFAULT_TREND_MONTHS else f"{months}m",
            bypass_cache=bypass_cache,
            timeout=timeout,
        )

    def burnout(
        self, subject_id: str, *, bypass_cache: bool = False, timeout: float | None = None
    ) -> BurnoutResult | InsufficientData:
        def compute():
            items = self.history(subject_id, BURNOUT_HISTORY_DAYS)
            return analyze_burnout(
                subject_id,
                items,
                self.active_count(subject_id),
                settings=self.settings,
                tz=self.tz,
                now=self.now(),
            )

        return self._run(
            "burnout",
            subject_id,
            compute,
            required=self.settings.min_items_burnout,
            bypass_cache=bypass_cache,
            timeout=timeout,
        )

    def collaboration(
        self, subject_id: str, *, bypass_cache: bool = False, timeout: float | None = None
    ) -> CollaborationResult | InsufficientData:
        def compute():
            items = self.history(subject_id, HISTORY_DAYS)
            return analyze_collaboration(subject_id, items, settings=self.settings, now=self.now())

        return self._run(
            "collaboration",
            subject_id,
            compute,
            required=self.settings.min_items_collaboration,
            bypass_cache=bypass_cache,
            timeout=timeout,
        )

    def prediction(
        self,
        subject_id: str,
        days_remaining: float | None = None,
        *,
        bypass_cache: bool = False,
        timeout: float | None = None,
    ) -> PredictionResult | InsufficientData:
        def compute():
            history = self.history(subject_id, PREDICTION_HISTORY_DAYS)
            active = self.fetch_active_items(subject_id)
            return analyze_prediction(
                subject_id,
                history,
                active,
                days_remaining=days_remaining,
                settings=self.settings,
                rng=self.rng,
                now=self.now(),
            )

        return self._run(
            "predictions",
            subject_id,
            compute,
            required=self.settings.min_items_prediction,
            suffix=None if days_remaining is None else f"{float(days_remaining):g}d",
            bypass_cache=bypass_cache,
            timeout=timeout,
        )

    def invalidate(self, subject_id: str, namespace: str | None = None) -> None:
        if namespace is None:
            self.cache.invalidate_all(subject_id)
        else:
            self.cache.invalidate(namespace, subject_id)
