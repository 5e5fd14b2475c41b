"""Pure aggregation of signal results into an overall score."""

from __future__ import annotations

from typing import Dict, Mapping, Sequence

from .config import WEIGHT_TOLERANCE, validate_weights
from .models import SIGNAL_NAMES, ConfidenceLabel, ScoreBreakdown, SignalResult, clamp_score

COMPLETENESS_BONUS = 10.0


def aggregate(
    signals: Sequence[SignalResult],
    weights: Mapping[str, float],
    *,
    expected: Sequence[str] = SIGNAL_NAMES,
) -> ScoreBreakdown:
    """Combine per-signal results; the same inputs always yield the same breakdown."""
    by_signal: Dict[str, float] = {}
    used: Dict[str, float] = {}
    weighted = 0.0
    for result in signals:
        by_signal[result.signal_name] = result.score
        weight = weights.get(result.signal_name)
        if weight is None:
            continue
        used[result.signal_name] = float(weight)
        weighted += result.score * float(weight)

    used_total = sum(used.values())
    if used_total > 0 and abs(used_total - 1.0) > WEIGHT_TOLERANCE:
        weighted /= used_total

    succeeded = {result.signal_name for result in signals if result.succeeded}
    expected_count = len(expected)
    succeeded_expected = sum(1 for name in expected if name in succeeded)
    bonus = succeeded_expected / expected_count * COMPLETENESS_BONUS if expected_count else 0.0

    confidence = (
        sum(result.confidence for result in signals) / len(signals) if signals else 0.0
    )
    return ScoreBreakdown(
        overall=round(clamp_score(weighted + bonus), 2),
        by_signal=by_signal,
        weights=used,
        completeness_bonus=round(bonus, 2),
        confidence_label=confidence_label(succeeded_expected, expected_count),
        confidence=round(confidence, 3),
    )


def confidence_label(succeeded: int, expected: int) -> ConfidenceLabel:
    """High when every expected signal succeeded, Medium when any did, else Low."""
    if expected and succeeded >= expected:
        return ConfidenceLabel.HIGH
    if succeeded > 0:
        return ConfidenceLabel.MEDIUM
    return ConfidenceLabel.LOW


__all__ = ["COMPLETENESS_BONUS", "aggregate", "confidence_label", "validate_weights"]
