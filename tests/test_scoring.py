"""Tests for score aggregation."""

from __future__ import annotations

import pytest

from repohealth.config import ConfigError
from repohealth.models import (
    CODE_QUALITY,
    DEPENDENCIES,
    DOCUMENTATION,
    METADATA,
    ConfidenceLabel,
    SignalResult,
)
from repohealth.scoring import aggregate, confidence_label, validate_weights

EQUAL_WEIGHTS = {METADATA: 0.25, DOCUMENTATION: 0.25, DEPENDENCIES: 0.25, CODE_QUALITY: 0.25}


def _ok(name: str, score: float, confidence: float = 0.9) -> SignalResult:
    return SignalResult.collected(name, score=score, confidence=confidence)


def _failed(name: str, score: float) -> SignalResult:
    return SignalResult.failed(name, reason="unavailable", score=score, confidence=0.2, estimated=True)


def test_all_signals_succeeding_adds_full_bonus() -> None:
    signals = [
        _ok(METADATA, 90),
        _ok(DOCUMENTATION, 85),
        _ok(DEPENDENCIES, 70),
        _ok(CODE_QUALITY, 95),
    ]

    breakdown = aggregate(signals, EQUAL_WEIGHTS)

    assert breakdown.overall == 95
    assert breakdown.completeness_bonus == 10
    assert breakdown.confidence_label is ConfidenceLabel.HIGH
    assert breakdown.confidence == 0.9
    assert breakdown.by_signal == {
        METADATA: 90,
        DOCUMENTATION: 85,
        DEPENDENCIES: 70,
        CODE_QUALITY: 95,
    }


def test_partial_success_scales_bonus_and_label() -> None:
    signals = [
        _ok(METADATA, 80),
        _ok(DOCUMENTATION, 80),
        _ok(DEPENDENCIES, 80),
        _failed(CODE_QUALITY, 60),
    ]

    breakdown = aggregate(signals, EQUAL_WEIGHTS)

    assert breakdown.overall == pytest.approx(75 + 7.5)
    assert breakdown.completeness_bonus == 7.5
    assert breakdown.confidence_label is ConfidenceLabel.MEDIUM


def test_missing_signals_renormalise_weights() -> None:
    breakdown = aggregate([_ok(METADATA, 80), _ok(DOCUMENTATION, 60)], EQUAL_WEIGHTS)

    # Weighted mean of the present signals plus half the bonus.
    assert breakdown.overall == pytest.approx(70 + 5)
    assert breakdown.weights == {METADATA: 0.25, DOCUMENTATION: 0.25}


def test_overall_is_clamped_to_100() -> None:
    signals = [_ok(name, 100) for name in EQUAL_WEIGHTS]
    assert aggregate(signals, EQUAL_WEIGHTS).overall == 100


def test_no_signals_is_low_confidence_zero() -> None:
    breakdown = aggregate([], EQUAL_WEIGHTS)
    assert breakdown.overall == 0
    assert breakdown.confidence == 0
    assert breakdown.confidence_label is ConfidenceLabel.LOW


def test_aggregation_is_idempotent() -> None:
    signals = [_ok(METADATA, 55), _failed(DEPENDENCIES, 60), _ok(CODE_QUALITY, 71.3)]
    assert aggregate(signals, EQUAL_WEIGHTS) == aggregate(list(signals), dict(EQUAL_WEIGHTS))


def test_confidence_label_is_monotonic() -> None:
    ranks = {ConfidenceLabel.LOW: 0, ConfidenceLabel.MEDIUM: 1, ConfidenceLabel.HIGH: 2}
    labels = [ranks[confidence_label(succeeded, 4)] for succeeded in range(5)]
    assert labels == sorted(labels)
    assert confidence_label(0, 4) is ConfidenceLabel.LOW
    assert confidence_label(4, 4) is ConfidenceLabel.HIGH


@pytest.mark.parametrize(
    "weights",
    [
        {},
        {METADATA: 0.5, DOCUMENTATION: 0.4},
        {METADATA: 1.2, DOCUMENTATION: -0.2},
        {"stars": 1.0},
    ],
)
def test_invalid_weights_are_rejected(weights) -> None:
    with pytest.raises(ConfigError):
        validate_weights(weights)


def test_weights_within_tolerance_are_accepted() -> None:
    validate_weights({METADATA: 0.334, DOCUMENTATION: 0.333, CODE_QUALITY: 0.338})
