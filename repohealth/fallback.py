"""Degraded-confidence estimates for signals whose data source is unavailable."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .errors import error_kind
from .models import (
    CODE_QUALITY,
    DEPENDENCIES,
    DOCUMENTATION,
    MAX_DEGRADED_CONFIDENCE,
    METADATA,
    AssessmentRequest,
    Priority,
    Recommendation,
    SignalResult,
)

WELL_KNOWN_OWNERS = frozenset(
    {"microsoft", "google", "facebook", "apple", "amazon", "netflix", "uber", "airbnb"}
)

# Ordered so longer, more specific hints win over their prefixes.
_LANGUAGE_HINTS = (
    ("typescript", "TypeScript"),
    ("javascript", "JavaScript"),
    ("python", "Python"),
    ("java", "Java"),
    ("rust", "Rust"),
    ("golang", "Go"),
    ("cpp", "C++"),
    ("csharp", "C#"),
    ("ts", "TypeScript"),
    ("js", "JavaScript"),
    ("py", "Python"),
    ("go", "Go"),
    ("rs", "Rust"),
    ("cs", "C#"),
)

_DEFAULT_SCORES = {
    DOCUMENTATION: 40.0,
    DEPENDENCIES: 60.0,
    CODE_QUALITY: 60.0,
}

_ESTIMATE_NOTE = "estimated from repository name heuristics"


class FallbackEstimator:
    """Builds deterministic best-effort results without the failed data source."""

    def estimate(
        self,
        signal_name: str,
        request: AssessmentRequest,
        *,
        reason: str | None = None,
        error: BaseException | None = None,
    ) -> SignalResult:
        cleaned = _format_reason(reason) or _format_reason(str(error) if error else None)
        builder = _ESTIMATORS.get(signal_name, _default_estimate)
        score, metrics = builder(signal_name, request)
        known_owner = request.owner.lower() in WELL_KNOWN_OWNERS
        metrics.update(
            {
                "estimated": True,
                "estimated_language": guess_language(request.repo),
                "error_kind": error_kind(error) if error is not None else "timeout_or_unavailable",
            }
        )
        failure_reason = f"{cleaned or 'data source unavailable'}; {_ESTIMATE_NOTE}"
        return SignalResult.failed(
            signal_name,
            reason=failure_reason,
            score=score,
            confidence=MAX_DEGRADED_CONFIDENCE if known_owner else 0.2,
            metrics=metrics,
            recommendations=_recovery_recommendations(signal_name, error),
            estimated=True,
        )


def guess_language(repo_name: str) -> Optional[str]:
    """Guess the primary language from name fragments such as ``py`` or ``rust``."""
    tokens = [token for token in _split_name(repo_name) if token]
    for hint, language in _LANGUAGE_HINTS:
        if hint in tokens:
            return language
    lowered = repo_name.lower()
    for hint, language in _LANGUAGE_HINTS:
        if len(hint) > 3 and hint in lowered:
            return language
    return None


def has_descriptive_name(repo_name: str) -> bool:
    return (
        len(repo_name) > 5
        and any(char.islower() for char in repo_name)
        and not repo_name.replace("-", "").replace("_", "").isdigit()
    )


def _split_name(name: str) -> List[str]:
    normalised = name.lower()
    for separator in "-_.":
        normalised = normalised.replace(separator, " ")
    return normalised.split()


def _metadata_estimate(signal_name: str, request: AssessmentRequest) -> tuple[float, Dict[str, Any]]:
    known_owner = request.owner.lower() in WELL_KNOWN_OWNERS
    descriptive = has_descriptive_name(request.repo)
    popularity = 80.0 if known_owner else 40.0 if descriptive else 20.0
    activity = 40.0
    community = 60.0 if known_owner else 30.0
    health = 80.0 if descriptive else 70.0
    sub_scores = {
        "popularity": popularity,
        "activity": activity,
        "community": community,
        "health": health,
    }
    score = sum(sub_scores.values()) / len(sub_scores)
    return score, {"sub_scores": sub_scores, "well_known_owner": known_owner}


def _default_estimate(signal_name: str, request: AssessmentRequest) -> tuple[float, Dict[str, Any]]:
    return _DEFAULT_SCORES.get(signal_name, 50.0), {}


_ESTIMATORS: Dict[str, Callable[[str, AssessmentRequest], tuple[float, Dict[str, Any]]]] = {
    METADATA: _metadata_estimate,
    DOCUMENTATION: _default_estimate,
    DEPENDENCIES: _default_estimate,
    CODE_QUALITY: _default_estimate,
}


def _recovery_recommendations(
    signal_name: str, error: BaseException | None
) -> List[Recommendation]:
    kind = error_kind(error) if error is not None else None
    if kind in {"rate_limited", "auth_failed"}:
        return [
            Recommendation(
                category="access",
                priority=Priority.MEDIUM,
                message=f"{_label(signal_name)} data was unavailable due to API access limits",
                suggested_action="Set GITHUB_TOKEN with read access to raise rate limits and re-run the assessment",
            )
        ]
    if kind == "not_found":
        return [
            Recommendation(
                category="access",
                priority=Priority.MEDIUM,
                message=f"{_label(signal_name)} data could not be located",
                suggested_action="Ensure the repository is public or that the token can read it",
            )
        ]
    return [
        Recommendation(
            category="access",
            priority=Priority.LOW,
            message=f"{_label(signal_name)} score is an estimate",
            suggested_action="Re-run the assessment later for a complete analysis",
        )
    ]


def _label(signal_name: str) -> str:
    return signal_name.replace("_", " ").capitalize()


def _format_reason(reason: str | None) -> str | None:
    if not reason:
        return None
    cleaned = " ".join(reason.strip().split())
    if not cleaned:
        return None
    return cleaned[:200] + ("…" if len(cleaned) > 200 else "")


__all__ = ["FallbackEstimator", "WELL_KNOWN_OWNERS", "guess_language", "has_descriptive_name"]
