"""Dependency collector: manifest discovery and registry-backed staleness risk."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..config import RiskThresholds
from ..errors import FetchError, NotFound
from ..models import DEPENDENCIES, AssessmentRequest, Priority, Recommendation, SignalResult
from ..sources import PackageRecord
from .base import Collector
from .manifests import ECOSYSTEMS, Ecosystem, Manifest

_VERSION = re.compile(r"\d+(?:\.\d+)*")
MAX_RECOMMENDATIONS = 10


class DependencyRisk(str, Enum):
    SAFE = "SAFE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
    UNKNOWN = "UNKNOWN"


RISK_POINTS = {
    DependencyRisk.CRITICAL: 10,
    DependencyRisk.HIGH: 5,
    DependencyRisk.MEDIUM: 2,
    DependencyRisk.LOW: 1,
}

_OUTDATED = frozenset(RISK_POINTS)


@dataclass(frozen=True)
class DependencyStatus:
    """Registry verdict for one declared dependency."""

    name: str
    declared: str
    installed: Optional[str]
    latest: Optional[str]
    risk: DependencyRisk
    days_behind: Optional[int] = None
    dev: bool = False
    error: Optional[str] = None
    problematic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "declared": self.declared,
            "installed": self.installed,
            "latest": self.latest,
            "risk": self.risk.value,
            "days_behind": self.days_behind,
            "dev": self.dev,
            "error": self.error,
            "problematic": self.problematic,
        }


def clean_version(spec: str) -> Optional[str]:
    """Reduce a version specifier such as ``^1.2.3`` to ``1.2.3``."""
    match = _VERSION.search(spec or "")
    return match.group(0) if match else None


def assess_risk(
    days: Optional[int], thresholds: RiskThresholds, *, same_version: bool = False
) -> DependencyRisk:
    """Classify publish-date divergence between installed and latest releases."""
    if same_version:
        return DependencyRisk.SAFE
    if days is None:
        return DependencyRisk.MEDIUM
    if days > thresholds.critical:
        return DependencyRisk.CRITICAL
    if days > thresholds.high:
        return DependencyRisk.HIGH
    if days > thresholds.medium:
        return DependencyRisk.MEDIUM
    if days > thresholds.low:
        return DependencyRisk.LOW
    return DependencyRisk.SAFE


def dependency_health(statuses: List[DependencyStatus], manifest: Manifest) -> float:
    outdated = sum(1 for status in statuses if status.risk in _OUTDATED)
    outdated_ratio = outdated / len(statuses) if statuses else 0.0
    risk_points = sum(RISK_POINTS.get(status.risk, 0) for status in statuses)
    health = max(0.0, 100 - outdated_ratio * 50 - min(risk_points, 50))
    health += 2 * sum((manifest.has_test, manifest.has_lint, manifest.has_build))
    return min(100.0, health)


class DependencyCollector(Collector):
    """Scores how far declared dependencies lag behind their latest releases."""

    name = DEPENDENCIES

    def __init__(self, context, ecosystems: Tuple[Ecosystem, ...] = ECOSYSTEMS) -> None:
        super().__init__(context)
        self.ecosystems = ecosystems

    def _collect(self, request: AssessmentRequest) -> SignalResult:
        ecosystem, manifest = self._find_manifest(request)
        declared = manifest.all_dependencies()
        limit = self.context.config.collectors.max_dependencies
        selected = declared[:limit]
        if len(declared) > limit:
            self.logger.info(
                "%s declares %d dependencies; analysing the first %d",
                request.slug,
                len(declared),
                limit,
            )
        statuses = self._batched(selected, lambda item: self._check(ecosystem, *item))
        return self._score(ecosystem, manifest, statuses, total=len(declared))

    def _find_manifest(self, request: AssessmentRequest) -> Tuple[Ecosystem, Manifest]:
        for ecosystem in self.ecosystems:
            for filename in ecosystem.manifest_names:
                try:
                    text = self.context.github.file_text(request.owner, request.repo, filename)
                except NotFound:
                    continue
                self.logger.debug("Found %s manifest %s in %s", ecosystem.name, filename, request.slug)
                return ecosystem, ecosystem.parse_manifest(filename, text)
        raise NotFound(f"No dependency manifest found in {request.slug}")

    def _check(self, ecosystem: Ecosystem, name: str, declared: str, dev: bool) -> DependencyStatus:
        status = self._lookup(ecosystem, name, declared, dev)
        if not ecosystem.is_problematic(name):
            return status
        return replace(status, risk=_escalate(status.risk), problematic=True)

    def _lookup(self, ecosystem: Ecosystem, name: str, declared: str, dev: bool) -> DependencyStatus:
        installed = clean_version(declared)
        registry = self.context.registries.get(ecosystem.registry)
        if registry is None:
            return DependencyStatus(
                name, declared, installed, None, DependencyRisk.UNKNOWN, dev=dev,
                error=f"no registry configured for {ecosystem.registry}",
            )
        try:
            record = registry.lookup(name)
        except NotFound as exc:
            return DependencyStatus(
                name, declared, installed, None, DependencyRisk.HIGH, dev=dev, error=str(exc)
            )
        except FetchError as exc:
            self.logger.warning("Registry lookup failed for %s: %s", name, exc)
            return DependencyStatus(
                name, declared, installed, None, DependencyRisk.UNKNOWN, dev=dev, error=str(exc)
            )

        latest = record.latest_version
        # Unpinned requirements resolve to the latest release.
        if installed is None or _same_version(installed, latest):
            return DependencyStatus(
                name, declared, installed, latest, DependencyRisk.SAFE, days_behind=0, dev=dev
            )
        days = _days_between(_published(record, installed), _published(record, latest))
        risk = assess_risk(days, self.context.config.risk)
        return DependencyStatus(name, declared, installed, latest, risk, days_behind=days, dev=dev)

    def _score(
        self,
        ecosystem: Ecosystem,
        manifest: Manifest,
        statuses: List[DependencyStatus],
        *,
        total: int,
    ) -> SignalResult:
        health = dependency_health(statuses, manifest)
        risk_counts = {risk.value: 0 for risk in DependencyRisk}
        for status in statuses:
            risk_counts[status.risk.value] += 1

        confidence = 0.9
        if statuses and risk_counts[DependencyRisk.UNKNOWN.value] / len(statuses) > 0.25:
            confidence *= 0.8

        metrics: Dict[str, Any] = {
            "ecosystem": ecosystem.name,
            "manifest": manifest.filename,
            "total_dependencies": total,
            "analyzed": len(statuses),
            "outdated": sum(1 for status in statuses if status.risk in _OUTDATED),
            "problematic": [status.name for status in statuses if status.problematic],
            "risk_counts": risk_counts,
            "risk_points": sum(RISK_POINTS.get(status.risk, 0) for status in statuses),
            "health": health,
            "scripts": {
                "test": manifest.has_test,
                "lint": manifest.has_lint,
                "build": manifest.has_build,
            },
            "has_engines": manifest.has_engines,
            "dependencies": [status.to_dict() for status in statuses],
        }
        return SignalResult.collected(
            self.name,
            score=health,
            confidence=confidence,
            metrics=metrics,
            recommendations=_recommendations(statuses, manifest, health),
        )

    def _on_missing(self, request: AssessmentRequest, exc: NotFound) -> SignalResult:
        return SignalResult.failed(
            self.name,
            reason=f"No dependency manifest found in {request.slug}",
            score=0.0,
            metrics={"manifest": None, "total_dependencies": 0, "dependencies": []},
            recommendations=[
                Recommendation(
                    category="dependencies",
                    priority=Priority.CRITICAL,
                    message="Add a dependency manifest",
                    suggested_action=(
                        "Declare dependencies in a manifest such as package.json, "
                        "pyproject.toml, go.mod, Cargo.toml, composer.json or Gemfile"
                    ),
                )
            ],
        )


def _recommendations(
    statuses: List[DependencyStatus], manifest: Manifest, health: float
) -> List[Recommendation]:
    recs: List[Recommendation] = []
    for status in statuses:
        if status.risk is DependencyRisk.CRITICAL:
            recs.append(
                Recommendation(
                    category="dependencies",
                    priority=Priority.CRITICAL,
                    message=f"Update {status.name} immediately",
                    suggested_action=f"Update {status.name} from {status.installed} to {status.latest}",
                )
            )
    for status in statuses:
        if status.problematic:
            recs.append(
                Recommendation(
                    category="dependencies",
                    priority=Priority.HIGH,
                    message=f"Replace {status.name}",
                    suggested_action=(
                        f"{status.name} has known security or maintenance issues; "
                        "move to a maintained alternative"
                    ),
                )
            )
    for status in statuses:
        if status.risk is DependencyRisk.HIGH and not status.problematic:
            target = f" to {status.latest}" if status.latest else ""
            recs.append(
                Recommendation(
                    category="dependencies",
                    priority=Priority.HIGH,
                    message=f"Update {status.name} soon",
                    suggested_action=f"Update {status.name}{target} or confirm it is still maintained",
                )
            )
    if health < 60:
        recs.append(
            Recommendation(
                category="dependencies",
                priority=Priority.HIGH,
                message="Dependency health is poor",
                suggested_action="Schedule a dependency upgrade pass and remove unused packages",
            )
        )
    if not manifest.has_test:
        recs.append(
            Recommendation(
                category="dependencies",
                priority=Priority.MEDIUM,
                message="Add a test script",
                suggested_action="Declare how to run the test suite in the manifest",
            )
        )
    if not manifest.has_lint:
        recs.append(
            Recommendation(
                category="dependencies",
                priority=Priority.LOW,
                message="Add a lint script",
                suggested_action="Configure a linter and expose it as a script",
            )
        )
    if not manifest.has_engines:
        recs.append(
            Recommendation(
                category="dependencies",
                priority=Priority.LOW,
                message="Specify the supported runtime version",
                suggested_action="Add an engines field or requires-python constraint",
            )
        )
    return recs[:MAX_RECOMMENDATIONS]


def _escalate(risk: DependencyRisk) -> DependencyRisk:
    # Known problem packages rate at least HIGH whatever their release age.
    if risk is DependencyRisk.CRITICAL:
        return risk
    return DependencyRisk.HIGH


def _same_version(installed: str, latest: str) -> bool:
    return _normalise(installed) == _normalise(latest)


def _normalise(version: str) -> Tuple[int, ...]:
    cleaned = clean_version(version) or ""
    parts = [int(part) for part in cleaned.split(".") if part]
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def _published(record: PackageRecord, version: str) -> Optional[datetime]:
    published = record.published(version)
    if published is not None:
        return published
    wanted = _normalise(version)
    for candidate, stamp in record.release_dates.items():
        if _normalise(candidate) == wanted:
            return stamp
    return None


def _days_between(installed: Optional[datetime], latest: Optional[datetime]) -> Optional[int]:
    if installed is None or latest is None:
        return None
    return max(0, (latest - installed).days)


__all__ = [
    "DependencyCollector",
    "DependencyRisk",
    "DependencyStatus",
    "RISK_POINTS",
    "assess_risk",
    "clean_version",
    "dependency_health",
]
