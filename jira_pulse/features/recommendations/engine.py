"""Recommendation aggregator: routes a request to analyzers and merges their advice."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

from jira_pulse.core.codehost import CodeHostClient
from jira_pulse.core.errors import InvalidRequestError
from jira_pulse.core.results import (
    AnalysisResult,
    BurnoutResult,
    CollaborationResult,
    InsufficientData,
    LoadResult,
    PredictionResult,
    StrengthResult,
    TimingResult,
    TrendResult,
)
from jira_pulse.core.service import InsightsService
from jira_pulse.features.recommendations.context import (
    GENERAL,
    REVIEWER,
    TICKET_SELECTION,
    TIMING,
    WORKLOAD,
    Recommendation,
    StatusSnapshot,
    classify_context,
    rank,
)
from jira_pulse.features.recommendations.status import current_status

logger = logging.getLogger(__name__)

ANALYZERS: tuple[str, ...] = (
    "timing",
    "load",
    "strengths",
    "trends",
    "burnout",
    "collaboration",
    "prediction",
)


def leading_advice(name: str, result: AnalysisResult) -> Recommendation | None:
    """Turn one analyzer result into its single most important recommendation."""
    if not result.recommendations:
        return None
    message = result.recommendations[0]
    match result:
        case InsufficientData():
            return Recommendation(
                type=GENERAL,
                priority="low",
                message=message,
                reasoning=f"{name}: not enough data",
                actionable=False,
            )
        case BurnoutResult(risk_level=level, score=score):
            priority = {"critical": "high", "high": "high", "warning": "medium"}.get(level, "low")
            return Recommendation(
                type=WORKLOAD,
                priority=priority,
                message=message,
                reasoning=f"Burnout risk {level} ({score}/100)",
                actions=list(result.recovery_plan),
            )
        case LoadResult(current_status=status, current_load=current):
            priority = "high" if status in {"over", "critical"} else "low"
            return Recommendation(
                type=WORKLOAD, priority=priority, message=message, reasoning=f"{current} active ({status})"
            )
        case PredictionResult(completion_probability=p):
            priority = "high" if p < 0.5 else "medium" if p < 0.8 else "low"
            return Recommendation(
                type=WORKLOAD, priority=priority, message=message, reasoning=f"{p:.0%} completion odds"
            )
        case TimingResult(peak=peak):
            return Recommendation(
                type=TIMING,
                priority="medium",
                message=message,
                reasoning=f"Peak {peak.start_hour}:00-{peak.end_hour}:00 ({peak.quality_multiplier:.1f}x)",
            )
        case StrengthResult(strengths=strengths):
            return Recommendation(
                type=TICKET_SELECTION,
                priority="medium" if strengths else "low",
                message=message,
                reasoning=f"Strengths: {', '.join(strengths[:3]) or 'none yet'}",
            )
        case TrendResult(velocity=velocity):
            falling = bool(velocity) and velocity[-1].trend == "down"
            return Recommendation(
                type=GENERAL,
                priority="medium" if falling else "low",
                message=message,
                reasoning="Monthly trends",
            )
        case CollaborationResult(teammates=teammates):
            return Recommendation(
                type=REVIEWER,
                priority="low",
                message=message,
                reasoning=f"{len(teammates)} collaborators analyzed",
            )
    return Recommendation(type=GENERAL, priority="low", message=message)


class RecommendationEngine:
    def __init__(self, service: InsightsService, codehost: CodeHostClient | None = None):
        self.service = service
        self.codehost = codehost or CodeHostClient()

    def _call(self, name: str, subject_id: str, **kwargs: Any) -> AnalysisResult:
        method: Callable[..., AnalysisResult] = getattr(self.service, name)
        return method(subject_id, **kwargs)

    def run_all(
        self, subject_id: str, *, bypass_cache: bool = False, timeout: float | None = None
    ) -> dict[str, AnalysisResult]:
        """Run every analyzer concurrently; a failing analyzer is logged and skipped."""
        out: dict[str, AnalysisResult] = {}
        with ThreadPoolExecutor(max_workers=len(ANALYZERS)) as pool:
            futures = {
                pool.submit(self._call, name, subject_id, bypass_cache=bypass_cache, timeout=timeout): name
                for name in ANALYZERS
            }
            for fut in as_completed(futures):
                name = futures[fut]
                try:
                    out[name] = fut.result()
                except Exception as exc:
                    logger.warning("Analyzer %s failed for %s: %s", name, subject_id, exc)
        return out

    def status(self, subject_id: str, results: dict[str, AnalysisResult] | None = None) -> StatusSnapshot:
        results = results if results is not None else {}
        timing = results.get("timing") or self.service.timing(subject_id)
        load = results.get("load") or self.service.load(subject_id)
        return current_status(timing, load, self.service.now(), self.service.tz)

    def get_recommendation(
        self,
        subject_id: str,
        context: str,
        *,
        bypass_cache: bool = False,
        timeout: float | None = None,
    ) -> list[Recommendation]:
        """Answer a free-text request with a ranked recommendation list.

        Raises
        ------
        InvalidRequestError
            When the subject or the request text is missing.
        """
        if not subject_id or not str(subject_id).strip():
            raise InvalidRequestError("A subject id is required")
        if not context or not str(context).strip():
            raise InvalidRequestError("A request context is required, e.g. 'which ticket should I pick?'")
        category = classify_context(context)
        logger.info("Recommendation request for %s classified as %s", subject_id, category)
        options = {"bypass_cache": bypass_cache, "timeout": timeout}
        if category == TICKET_SELECTION:
            recs = self._ticket_selection(subject_id, options)
        elif category == TIMING:
            recs = self._timing(subject_id, options)
        elif category == WORKLOAD:
            recs = self._workload(subject_id, options)
        elif category == REVIEWER:
            recs = self._reviewer(subject_id, options)
        else:
            recs = self._general(subject_id, options)
        return rank(recs)

    # ------------------ Category Paths ------------------
    def _ticket_selection(self, subject_id: str, options: dict[str, Any]) -> list[Recommendation]:
        strengths = self.service.strengths(subject_id, **options)
        timing = self.service.timing(subject_id, **options)
        load = self.service.load(subject_id, **options)
        recs = []
        snapshot = current_status(timing, load, self.service.now(), self.service.tz)
        if isinstance(load, LoadResult) and load.current_status in {"over", "critical"}:
            recs.append(
                Recommendation(
                    type=TICKET_SELECTION,
                    priority="high",
                    message="Finish something before picking a new ticket.",
                    reasoning=f"{load.current_load} items already in flight",
                    actions=["Close or hand off one in-progress item first"],
                )
            )
        if isinstance(strengths, StrengthResult) and strengths.strengths:
            top = strengths.strengths[0]
            recs.append(
                Recommendation(
                    type=TICKET_SELECTION,
                    priority="medium",
                    message=f"Pick a {top} item: it's where you're strongest.",
                    reasoning="; ".join(strengths.recommendations[:1]),
                    actions=[f"Filter your backlog for {top}"],
                )
            )
        if snapshot.time_zone == "peak":
            recs.append(
                Recommendation(
                    type=TICKET_SELECTION,
                    priority="medium",
                    message="You're in your peak hours: take the most complex ticket now.",
                    reasoning=snapshot.message,
                )
            )
        elif snapshot.time_zone == "danger":
            recs.append(
                Recommendation(
                    type=TICKET_SELECTION,
                    priority="medium",
                    message="Pick a small, low-risk ticket; this is a low-quality hour for you.",
                    reasoning=snapshot.message,
                )
            )
        if not recs:
            recs = self._merge(("strengths", strengths), ("timing", timing))
        return recs

    def _timing(self, subject_id: str, options: dict[str, Any]) -> list[Recommendation]:
        timing = self.service.timing(subject_id, **options)
        load = self.service.load(subject_id, **options)
        snapshot = current_status(timing, load, self.service.now(), self.service.tz)
        recs = [
            Recommendation(type=TIMING, priority="high", message=snapshot.message, reasoning="Current status")
        ]
        if isinstance(timing, TimingResult):
            for idx, text in enumerate(timing.recommendations):
                priority = "medium" if idx == 0 else "low"
                recs.append(Recommendation(type=TIMING, priority=priority, message=text))
        else:
            recs.extend(self._merge(("timing", timing)))
        return recs

    def _workload(self, subject_id: str, options: dict[str, Any]) -> list[Recommendation]:
        results = (
            ("load", self.service.load(subject_id, **options)),
            ("burnout", self.service.burnout(subject_id, **options)),
            ("prediction", self.service.prediction(subject_id, **options)),
        )
        return self._merge(*results)

    def _reviewer(self, subject_id: str, options: dict[str, Any]) -> list[Recommendation]:
        chemistry = self.service.collaboration(subject_id, **options)
        reviews = self.codehost.reviews(subject_id)
        if not isinstance(chemistry, CollaborationResult):
            return self._merge(("collaboration", chemistry))
        recs = []
        for mate in chemistry.teammates[:3]:
            if mate.rating not in {"excellent", "good"}:
                continue
            recs.append(
                Recommendation(
                    type=REVIEWER,
                    priority="high" if mate.rating == "excellent" else "medium",
                    message=f"Ask {mate.name} to review: chemistry {mate.score}/100 ({mate.rating}).",
                    reasoning=f"{mate.shared_items} shared items at {mate.speed_multiplier:.1f}x solo speed",
                    actions=[f"Request a review from {mate.name}"],
                )
            )
        if not recs:
            recs.append(
                Recommendation(
                    type=REVIEWER,
                    priority="low",
                    message=(chemistry.recommendations or ["No clear reviewer match."])[0],
                    reasoning=f"{len(reviews)} code reviews on record",
                    actionable=False,
                )
            )
        return recs

    def _general(self, subject_id: str, options: dict[str, Any]) -> list[Recommendation]:
        results = self.run_all(subject_id, **options)
        snapshot = self.status(subject_id, results)
        recs = [
            Recommendation(
                type=GENERAL,
                priority="high" if snapshot.time_zone == "danger" else "medium",
                message=snapshot.message,
                reasoning=f"{snapshot.time_zone} hour, load {snapshot.load_zone or 'unknown'}",
                actionable=False,
            )
        ]
        recs.extend(self._merge(*((name, results[name]) for name in ANALYZERS if name in results)))
        return recs

    @staticmethod
    def _merge(*named: tuple[str, AnalysisResult]) -> list[Recommendation]:
        recs = []
        for name, result in named:
            rec = leading_advice(name, result)
            if rec is not None:
                recs.append(rec)
        return recs
