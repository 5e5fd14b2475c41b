"""Report assembly and JSON (de)serialisation."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence

from .models import (
    CODE_QUALITY,
    DEPENDENCIES,
    DOCUMENTATION,
    METADATA,
    SIGNAL_NAMES,
    AssessmentReport,
    AssessmentRequest,
    ConfidenceLabel,
    Priority,
    Recommendation,
    ScoreBreakdown,
    SignalResult,
)
from .recommendations import RecommendationGenerator
from .scoring import aggregate

REPORT_FORMAT_VERSION = 1

_LIMITATION_MESSAGES = {
    METADATA: "Repository metadata unavailable - popularity and activity are estimated",
    DOCUMENTATION: "Documentation analysis failed - documentation quality unknown",
    DEPENDENCIES: "Dependency analysis failed - security assessment unavailable",
    CODE_QUALITY: "Code quality analysis failed - maintainability unknown",
}


class ReportAssembler:
    """Builds the final report from resolved signal results."""

    def __init__(
        self,
        weights: Mapping[str, float],
        generator: RecommendationGenerator | None = None,
        *,
        expected: Sequence[str] = SIGNAL_NAMES,
    ) -> None:
        self.weights = dict(weights)
        self.generator = generator or RecommendationGenerator()
        self.expected = tuple(expected)

    def assemble(
        self,
        request: AssessmentRequest,
        signals: Sequence[SignalResult],
        *,
        started_at: datetime,
        finished_at: datetime,
    ) -> AssessmentReport:
        breakdown = aggregate(signals, self.weights, expected=self.expected)
        recommendations = self.generator.generate(signals, breakdown)
        elapsed = finished_at - started_at
        return AssessmentReport(
            request=request,
            signals=tuple(signals),
            scores=breakdown,
            recommendations=tuple(recommendations),
            limitations=tuple(limitations(signals)),
            processing_time_ms=max(0, int(elapsed.total_seconds() * 1000)),
            insight=insight(request, breakdown),
            generated_at=finished_at.isoformat(),
        )


def limitations(signals: Sequence[SignalResult]) -> List[str]:
    notes: List[str] = []
    for result in signals:
        if result.succeeded:
            continue
        message = _LIMITATION_MESSAGES.get(
            result.signal_name,
            f"{result.signal_name.replace('_', ' ').capitalize()} analysis failed",
        )
        notes.append(f"{message}: {result.failure_reason}")
    return notes


def insight(request: AssessmentRequest, breakdown: ScoreBreakdown) -> str:
    if breakdown.overall >= 80:
        summary = "shows excellent health"
    elif breakdown.overall >= 60:
        summary = "shows good health with room for improvement"
    else:
        summary = "needs significant improvements"
    return (
        f"{request.slug} {summary} (score {breakdown.overall:.1f}/100, "
        f"{breakdown.confidence_label.value} confidence)"
    )


def report_to_dict(report: AssessmentReport) -> Dict[str, Any]:
    """Return a JSON-compatible mapping; enums are written by value."""
    return {
        "version": REPORT_FORMAT_VERSION,
        "request": {"owner": report.request.owner, "repo": report.request.repo},
        "signals": [_signal_to_dict(result) for result in report.signals],
        "scores": {
            "overall": report.scores.overall,
            "by_signal": dict(report.scores.by_signal),
            "weights": dict(report.scores.weights),
            "completeness_bonus": report.scores.completeness_bonus,
            "confidence_label": report.scores.confidence_label.value,
            "confidence": report.scores.confidence,
        },
        "recommendations": [_recommendation_to_dict(rec) for rec in report.recommendations],
        "limitations": list(report.limitations),
        "processing_time_ms": report.processing_time_ms,
        "insight": report.insight,
        "generated_at": report.generated_at,
    }


def report_from_dict(data: Mapping[str, Any]) -> AssessmentReport:
    """Inverse of :func:`report_to_dict`; raises ValueError on malformed input."""
    try:
        request_data = data["request"]
        scores = data["scores"]
        return AssessmentReport(
            request=AssessmentRequest(owner=request_data["owner"], repo=request_data["repo"]),
            signals=tuple(_signal_from_dict(item) for item in data["signals"]),
            scores=ScoreBreakdown(
                overall=scores["overall"],
                by_signal=dict(scores["by_signal"]),
                weights=dict(scores["weights"]),
                completeness_bonus=scores["completeness_bonus"],
                confidence_label=ConfidenceLabel(scores["confidence_label"]),
                confidence=scores["confidence"],
            ),
            recommendations=tuple(
                _recommendation_from_dict(item) for item in data.get("recommendations", [])
            ),
            limitations=tuple(data.get("limitations", [])),
            processing_time_ms=int(data.get("processing_time_ms", 0)),
            insight=data.get("insight", ""),
            generated_at=data.get("generated_at", ""),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed report data: {exc}") from exc


def dumps(report: AssessmentReport, *, indent: int | None = 2) -> str:
    return json.dumps(report_to_dict(report), indent=indent)


def loads(text: str) -> AssessmentReport:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid report JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Report JSON must be an object")
    return report_from_dict(data)


def _signal_to_dict(result: SignalResult) -> Dict[str, Any]:
    return {
        "signal_name": result.signal_name,
        "succeeded": result.succeeded,
        "score": result.score,
        "confidence": result.confidence,
        "metrics": result.metrics,
        "recommendations": [_recommendation_to_dict(rec) for rec in result.recommendations],
        "failure_reason": result.failure_reason,
        "estimated": result.estimated,
    }


def _signal_from_dict(data: Mapping[str, Any]) -> SignalResult:
    return SignalResult(
        signal_name=data["signal_name"],
        succeeded=bool(data["succeeded"]),
        score=data["score"],
        confidence=data["confidence"],
        metrics=dict(data.get("metrics") or {}),
        recommendations=tuple(
            _recommendation_from_dict(item) for item in data.get("recommendations", [])
        ),
        failure_reason=data.get("failure_reason"),
        estimated=bool(data.get("estimated", False)),
    )


def _recommendation_to_dict(rec: Recommendation) -> Dict[str, Any]:
    return {
        "category": rec.category,
        "priority": rec.priority.value,
        "message": rec.message,
        "suggested_action": rec.suggested_action,
    }


def _recommendation_from_dict(data: Mapping[str, Any]) -> Recommendation:
    return Recommendation(
        category=data["category"],
        priority=Priority(data["priority"]),
        message=data["message"],
        suggested_action=data.get("suggested_action", ""),
    )


__all__ = [
    "ReportAssembler",
    "dumps",
    "insight",
    "limitations",
    "loads",
    "report_from_dict",
    "report_to_dict",
]
