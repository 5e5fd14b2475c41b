"""Core data models shared across repohealth components."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

METADATA = "metadata"
DOCUMENTATION = "documentation"
DEPENDENCIES = "dependencies"
CODE_QUALITY = "code_quality"

SIGNAL_NAMES: Tuple[str, ...] = (METADATA, DOCUMENTATION, DEPENDENCIES, CODE_QUALITY)

# Collected results never drop below this; degraded ones never rise above the cap.
MIN_COLLECTED_CONFIDENCE = 0.5
MAX_DEGRADED_CONFIDENCE = 0.3

OWNER_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9])){0,38}$")
REPO_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,100}$")


class Priority(str, Enum):
    """Recommendation urgency, ordered from most to least pressing."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class ConfidenceLabel(str, Enum):
    """Bucketed trust level of an aggregated score."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass(frozen=True)
class AssessmentRequest:
    """Identifies the repository to assess."""

    owner: str
    repo: str

    def __post_init__(self) -> None:
        if not isinstance(self.owner, str) or not OWNER_PATTERN.match(self.owner):
            raise ValueError(f"Invalid repository owner: {self.owner!r}")
        if (
            not isinstance(self.repo, str)
            or not REPO_PATTERN.match(self.repo)
            or self.repo in {".", ".."}
        ):
            raise ValueError(f"Invalid repository name: {self.repo!r}")

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class Recommendation:
    """Actionable advice attached to a signal or to the overall report."""

    category: str
    priority: Priority
    message: str
    suggested_action: str = ""


@dataclass(frozen=True)
class SignalResult:
    """Outcome of one signal's collection attempt, present even on failure."""

    signal_name: str
    succeeded: bool
    score: float
    confidence: float
    metrics: Dict[str, Any] = field(default_factory=dict)
    recommendations: Tuple[Recommendation, ...] = ()
    failure_reason: Optional[str] = None
    estimated: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 100.0:
            raise ValueError(f"Signal score out of range: {self.score}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Signal confidence out of range: {self.confidence}")
        if not self.succeeded and not self.failure_reason:
            raise ValueError("Failed signal results must carry a failure_reason")
        if not isinstance(self.recommendations, tuple):
            object.__setattr__(self, "recommendations", tuple(self.recommendations))

    @classmethod
    def collected(
        cls,
        signal_name: str,
        *,
        score: float,
        confidence: float,
        metrics: Optional[Dict[str, Any]] = None,
        recommendations: Sequence[Recommendation] = (),
    ) -> "SignalResult":
        """Build a result backed by real data."""
        return cls(
            signal_name=signal_name,
            succeeded=True,
            score=clamp_score(score),
            confidence=min(1.0, max(MIN_COLLECTED_CONFIDENCE, confidence)),
            metrics=dict(metrics or {}),
            recommendations=tuple(recommendations),
        )

    @classmethod
    def failed(
        cls,
        signal_name: str,
        *,
        reason: str,
        score: float = 0.0,
        confidence: float = MAX_DEGRADED_CONFIDENCE,
        metrics: Optional[Dict[str, Any]] = None,
        recommendations: Sequence[Recommendation] = (),
        estimated: bool = False,
    ) -> "SignalResult":
        """Build a degraded result; confidence is capped below collected results."""
        return cls(
            signal_name=signal_name,
            succeeded=False,
            score=clamp_score(score),
            confidence=min(MAX_DEGRADED_CONFIDENCE, max(0.0, confidence)),
            metrics=dict(metrics or {}),
            recommendations=tuple(recommendations),
            failure_reason=reason,
            estimated=estimated,
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    """Aggregated scores derived from a full set of signal results."""

    overall: float
    by_signal: Dict[str, float]
    weights: Dict[str, float]
    completeness_bonus: float
    confidence_label: ConfidenceLabel
    confidence: float


@dataclass(frozen=True)
class AssessmentReport:
    """Top-level result of one repository assessment."""

    request: AssessmentRequest
    signals: Tuple[SignalResult, ...]
    scores: ScoreBreakdown
    recommendations: Tuple[Recommendation, ...]
    limitations: Tuple[str, ...]
    processing_time_ms: int
    insight: str = ""
    generated_at: str = ""

    def signal(self, name: str) -> Optional[SignalResult]:
        for result in self.signals:
            if result.signal_name == name:
                return result
        return None


def clamp_score(value: float) -> float:
    """Clamp a score into the inclusive [0, 100] range."""
    return float(max(0.0, min(100.0, value)))


__all__ = [
    "AssessmentReport",
    "AssessmentRequest",
    "CODE_QUALITY",
    "ConfidenceLabel",
    "DEPENDENCIES",
    "DOCUMENTATION",
    "MAX_DEGRADED_CONFIDENCE",
    "METADATA",
    "MIN_COLLECTED_CONFIDENCE",
    "Priority",
    "Recommendation",
    "SIGNAL_NAMES",
    "ScoreBreakdown",
    "SignalResult",
    "clamp_score",
]
