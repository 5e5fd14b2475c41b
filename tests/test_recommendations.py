"""Tests for recommendation merging and prioritisation."""

from __future__ import annotations

from repohealth.models import (
    CODE_QUALITY,
    DEPENDENCIES,
    DOCUMENTATION,
    METADATA,
    ConfidenceLabel,
    Priority,
    Recommendation,
    ScoreBreakdown,
    SignalResult,
)
from repohealth.recommendations import RecommendationGenerator, rule_recommendation


def _breakdown(overall: float) -> ScoreBreakdown:
    return ScoreBreakdown(
        overall=overall,
        by_signal={},
        weights={},
        completeness_bonus=0.0,
        confidence_label=ConfidenceLabel.HIGH,
        confidence=0.9,
    )


def _rec(message: str, priority: Priority, category: str = "documentation") -> Recommendation:
    return Recommendation(category=category, priority=priority, message=message)


def test_rule_thresholds() -> None:
    assert rule_recommendation(SignalResult.collected(METADATA, score=75, confidence=1)) is None
    medium = rule_recommendation(SignalResult.collected(METADATA, score=55, confidence=1))
    assert medium is not None and medium.priority is Priority.MEDIUM
    critical = rule_recommendation(SignalResult.collected(CODE_QUALITY, score=20, confidence=1))
    assert critical is not None and critical.priority is Priority.CRITICAL
    assert critical.category == "code_quality"


def test_per_signal_list_is_sorted_and_truncated() -> None:
    result = SignalResult.collected(
        DOCUMENTATION,
        score=30,
        confidence=0.9,
        recommendations=[
            _rec("Add badges", Priority.LOW),
            _rec("Add a usage section", Priority.MEDIUM),
            _rec("Add a license section", Priority.HIGH),
        ],
    )

    recs = RecommendationGenerator(per_signal=3).for_signal(result)

    assert [rec.priority for rec in recs] == [Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM]
    assert recs[0].message == "Improve project documentation"


def test_healthy_repository_has_no_recommendations() -> None:
    signals = [SignalResult.collected(name, score=90, confidence=0.9) for name in (METADATA, DOCUMENTATION)]
    assert RecommendationGenerator().generate(signals, _breakdown(92)) == []


def test_low_overall_score_leads_with_overall_item() -> None:
    signals = [SignalResult.collected(DEPENDENCIES, score=20, confidence=0.9)]

    recs = RecommendationGenerator().generate(signals, _breakdown(25))

    assert recs[0].category == "overall"
    assert recs[0].message == "Repository health is critically low"
    assert recs[1].message == "Modernise project dependencies"


def test_duplicates_are_dropped_and_order_is_by_priority() -> None:
    shared = _rec("Add a CONTRIBUTING guide", Priority.MEDIUM, "community")
    signals = [
        SignalResult.collected(METADATA, score=80, confidence=0.9, recommendations=[shared]),
        SignalResult.collected(
            DOCUMENTATION,
            score=80,
            confidence=0.9,
            recommendations=[shared, _rec("Fix broken links", Priority.HIGH)],
        ),
    ]

    recs = RecommendationGenerator().generate(signals, _breakdown(80))

    assert [rec.message for rec in recs] == ["Fix broken links", "Add a CONTRIBUTING guide"]


def test_total_is_capped() -> None:
    signals = [
        SignalResult.collected(
            name,
            score=10,
            confidence=0.9,
            recommendations=[_rec(f"{name} item {i}", Priority.HIGH, name) for i in range(3)],
        )
        for name in (METADATA, DOCUMENTATION, DEPENDENCIES, CODE_QUALITY)
    ]

    recs = RecommendationGenerator(per_signal=3, limit=8).generate(signals, _breakdown(10))

    assert len(recs) == 8
    assert recs[0].category == "overall"
    ranks = [rec.priority.rank for rec in recs]
    assert ranks == sorted(ranks)
