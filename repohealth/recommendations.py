"""Prioritised recommendations derived from signal results."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    CODE_QUALITY,
    DEPENDENCIES,
    DOCUMENTATION,
    METADATA,
    Priority,
    Recommendation,
    ScoreBreakdown,
    SignalResult,
)

CRITICAL_THRESHOLD = 40.0
MEDIUM_THRESHOLD = 70.0

# (category, low-score message, suggested action) per signal.
_RULES: Dict[str, Tuple[str, str, str]] = {
    METADATA: (
        "community",
        "Grow project activity and community engagement",
        "Publish releases regularly, triage issues, and welcome new contributors",
    ),
    DOCUMENTATION: (
        "documentation",
        "Improve project documentation",
        "Expand the README with installation, usage, and contribution guidance",
    ),
    DEPENDENCIES: (
        "dependencies",
        "Modernise project dependencies",
        "Upgrade outdated packages and declare test and lint tooling",
    ),
    CODE_QUALITY: (
        "code_quality",
        "Improve code maintainability",
        "Refactor complex functions and address code smells",
    ),
}


class RecommendationGenerator:
    """Merges collector recommendations with score-based rules into a bounded list."""

    def __init__(self, per_signal: int = 3, limit: int = 8) -> None:
        self.per_signal = per_signal
        self.limit = limit

    def generate(
        self, signals: Sequence[SignalResult], breakdown: ScoreBreakdown
    ) -> List[Recommendation]:
        combined: List[Recommendation] = []
        for result in signals:
            combined.extend(self.for_signal(result))
        combined.sort(key=lambda rec: rec.priority.rank)

        ordered: List[Recommendation] = []
        if breakdown.overall < CRITICAL_THRESHOLD:
            ordered.append(
                Recommendation(
                    category="overall",
                    priority=Priority.CRITICAL,
                    message="Repository health is critically low",
                    suggested_action="Address the critical items below before adopting this project",
                )
            )
        seen = {rec.message for rec in ordered}
        for rec in combined:
            if rec.message in seen:
                continue
            seen.add(rec.message)
            ordered.append(rec)
        return ordered[: self.limit]

    def for_signal(self, result: SignalResult) -> List[Recommendation]:
        """Collector recommendations then the score rule, best first, truncated."""
        candidates = list(result.recommendations)
        rule = rule_recommendation(result)
        if rule is not None:
            candidates.append(rule)
        candidates.sort(key=lambda rec: rec.priority.rank)
        return candidates[: self.per_signal]


def rule_recommendation(result: SignalResult) -> Optional[Recommendation]:
    if result.score >= MEDIUM_THRESHOLD:
        return None
    category, message, action = _RULES.get(
        result.signal_name,
        (
            result.signal_name,
            f"Improve {result.signal_name.replace('_', ' ')}",
            "Review the signal details for specific issues",
        ),
    )
    priority = Priority.CRITICAL if result.score < CRITICAL_THRESHOLD else Priority.MEDIUM
    return Recommendation(category=category, priority=priority, message=message, suggested_action=action)


__all__ = ["RecommendationGenerator", "rule_recommendation"]
