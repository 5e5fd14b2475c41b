"""Code-quality collector: heuristic metrics over the largest source files."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import FetchError
from ..metrics import FileMetrics, FunctionMetrics, language_for_path
from ..models import CODE_QUALITY, AssessmentRequest, Priority, Recommendation, SignalResult
from ..sources import TreeEntry
from .base import Collector

IGNORED_PATTERNS = (
    "node_modules/",
    ".git/",
    "dist/",
    "build/",
    "coverage/",
    "vendor/",
    "__pycache__/",
    ".egg-info",
    ".min.",
)

SMELL_WEIGHTS = {"HIGH": 3, "MEDIUM": 2, "LOW": 1}
MAX_RECOMMENDATIONS = 8


class FunctionRisk(str, Enum):
    SAFE = "SAFE"
    WARNING = "WARNING"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# (risk, max length, max complexity) checked from most to least severe.
_RISK_LIMITS: Tuple[Tuple[FunctionRisk, int, int], ...] = (
    (FunctionRisk.CRITICAL, 150, 20),
    (FunctionRisk.HIGH, 100, 15),
    (FunctionRisk.MEDIUM, 80, 10),
    (FunctionRisk.WARNING, 50, 6),
)

RISK_PENALTIES = {
    FunctionRisk.CRITICAL: 20,
    FunctionRisk.HIGH: 10,
    FunctionRisk.MEDIUM: 5,
    FunctionRisk.WARNING: 2,
}


def function_risk(function: FunctionMetrics) -> FunctionRisk:
    for risk, max_length, max_complexity in _RISK_LIMITS:
        if function.length > max_length or function.complexity > max_complexity:
            return risk
    return FunctionRisk.SAFE


def file_score(metrics: FileMetrics) -> float:
    """Score one file out of 100 from function risks, smells, and comments."""
    score = 100.0
    for function in metrics.functions:
        score -= RISK_PENALTIES.get(function_risk(function), 0)
    for smell in metrics.smells:
        score -= SMELL_WEIGHTS.get(smell.severity.upper(), 1) * smell.count
    if metrics.comment_ratio > 0.1:
        score += 5
    return max(0.0, min(100.0, score))


def is_eligible(entry: TreeEntry, max_file_size: int) -> bool:
    if entry.type != "blob" or entry.size >= max_file_size:
        return False
    if any(pattern in entry.path for pattern in IGNORED_PATTERNS):
        return False
    return language_for_path(entry.path) is not None


class CodeQualityCollector(Collector):
    """Estimates maintainability from function size, complexity, and smells."""

    name = CODE_QUALITY

    def _collect(self, request: AssessmentRequest) -> SignalResult:
        settings = self.context.config.collectors
        repository = self.context.github.repository(request.owner, request.repo)
        tree = self.context.github.tree(request.owner, request.repo, repository.default_branch)
        eligible = [entry for entry in tree if is_eligible(entry, settings.max_file_size)]
        if not eligible:
            return SignalResult.collected(
                self.name,
                score=50.0,
                confidence=0.5,
                metrics={
                    "eligible_files": 0,
                    "analyzed_files": 0,
                    "note": "No analyzable source files found",
                },
            )

        selected = sorted(eligible, key=lambda entry: entry.size, reverse=True)[: settings.max_files]
        failures: List[FetchError] = []

        def analyse(entry: TreeEntry) -> Optional[Tuple[str, FileMetrics]]:
            try:
                source = self.context.github.file_text(request.owner, request.repo, entry.path)
            except FetchError as exc:
                self.logger.warning("Skipping %s in %s: %s", entry.path, request.slug, exc)
                failures.append(exc)
                return None
            language = language_for_path(entry.path) or "javascript"
            return entry.path, self.context.extractor.extract(source, language)

        analysed = [item for item in self._batched(selected, analyse) if item is not None]
        if not analysed and failures:
            raise failures[-1]
        return self._score(analysed, eligible=len(eligible))

    def _score(self, analysed: List[Tuple[str, FileMetrics]], *, eligible: int) -> SignalResult:
        files: List[Dict[str, Any]] = []
        risk_counts = {risk.value: 0 for risk in FunctionRisk}
        smell_counts: Dict[str, int] = {}
        scores: List[float] = []
        total_functions = 0
        total_smells = 0
        worst: List[Dict[str, Any]] = []

        for path, metrics in analysed:
            score = file_score(metrics)
            scores.append(score)
            total_functions += len(metrics.functions)
            for function in metrics.functions:
                risk = function_risk(function)
                risk_counts[risk.value] += 1
                if risk in (FunctionRisk.CRITICAL, FunctionRisk.HIGH):
                    worst.append(
                        {
                            "file": path,
                            "name": function.name,
                            "line": function.start_line,
                            "length": function.length,
                            "complexity": function.complexity,
                            "risk": risk.value,
                        }
                    )
            for smell in metrics.smells:
                smell_counts[smell.kind] = smell_counts.get(smell.kind, 0) + smell.count
                total_smells += smell.count
            files.append(
                {
                    "path": path,
                    "language": metrics.language,
                    "score": score,
                    "lines": metrics.line_count,
                    "functions": len(metrics.functions),
                    "max_nesting": metrics.max_nesting,
                    "comment_ratio": round(metrics.comment_ratio, 3),
                }
            )

        overall = sum(scores) / len(scores) if scores else 50.0
        coverage = len(analysed) / eligible if eligible else 0.0
        confidence = 0.8
        if coverage < 0.2:
            confidence *= 0.5
        elif coverage < 0.5:
            confidence *= 0.7
        if len(analysed) < 5:
            confidence *= 0.6

        metrics_out: Dict[str, Any] = {
            "eligible_files": eligible,
            "analyzed_files": len(analysed),
            "total_functions": total_functions,
            "function_risks": risk_counts,
            "smells": smell_counts,
            "total_smells": total_smells,
            "files": files,
            "risky_functions": worst[:10],
        }
        return SignalResult.collected(
            self.name,
            score=overall,
            confidence=confidence,
            metrics=metrics_out,
            recommendations=_recommendations(
                risk_counts, overall, total_smells=total_smells, total_functions=total_functions
            ),
        )


def _recommendations(
    risk_counts: Dict[str, int], score: float, *, total_smells: int, total_functions: int
) -> List[Recommendation]:
    recs: List[Recommendation] = []
    critical = risk_counts[FunctionRisk.CRITICAL.value]
    high = risk_counts[FunctionRisk.HIGH.value]
    if critical:
        recs.append(
            Recommendation(
                category="code_quality",
                priority=Priority.CRITICAL,
                message=f"Refactor {critical} critical-risk function(s)",
                suggested_action="Split very long or highly branched functions into smaller units",
            )
        )
    if high > 5:
        recs.append(
            Recommendation(
                category="code_quality",
                priority=Priority.HIGH,
                message=f"Reduce complexity in {high} high-risk functions",
                suggested_action="Extract helpers and simplify conditional logic",
            )
        )
    if score < 60:
        recs.append(
            Recommendation(
                category="code_quality",
                priority=Priority.HIGH,
                message="Overall code quality needs attention",
                suggested_action="Adopt a linter and enforce function size limits in review",
            )
        )
    if total_smells > total_functions * 0.5:
        recs.append(
            Recommendation(
                category="code_quality",
                priority=Priority.MEDIUM,
                message="Address recurring code smells",
                suggested_action="Replace magic numbers with constants and resolve TODO markers",
            )
        )
    return recs[:MAX_RECOMMENDATIONS]


__all__ = [
    "CodeQualityCollector",
    "FunctionRisk",
    "IGNORED_PATTERNS",
    "file_score",
    "function_risk",
    "is_eligible",
]
