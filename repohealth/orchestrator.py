"""Concurrent assessment pipeline: collect, aggregate, report."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from .collectors import Collector, CollectorContext, discover_collectors
from .config import AssessmentConfig, load_config
from .errors import NetworkTimeout
from .fallback import FallbackEstimator
from .logging import get_logger, is_verbose
from .models import AssessmentReport, AssessmentRequest, SignalResult
from .recommendations import RecommendationGenerator
from .report import ReportAssembler
from .stores import ReportStore


class AssessmentState(str, Enum):
    PENDING = "pending"
    COLLECTING = "collecting"
    AGGREGATING = "aggregating"
    DONE = "done"


_TRANSITIONS = {
    AssessmentState.PENDING: AssessmentState.COLLECTING,
    AssessmentState.COLLECTING: AssessmentState.AGGREGATING,
    AssessmentState.AGGREGATING: AssessmentState.DONE,
}


@dataclass
class AssessmentRun:
    """Lifecycle of one assessment request."""

    request: AssessmentRequest
    state: AssessmentState = AssessmentState.PENDING
    history: List[Tuple[AssessmentState, datetime]] = field(default_factory=list)
    report: Optional[AssessmentReport] = None

    def advance(self, target: AssessmentState, *, at: datetime | None = None) -> None:
        expected = _TRANSITIONS.get(self.state)
        if expected is not target:
            raise RuntimeError(
                f"Invalid assessment transition {self.state.value} -> {target.value}"
            )
        self.state = target
        self.history.append((target, at or datetime.now(UTC)))


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Orchestrator:
    """Runs every collector concurrently and assembles the resulting report."""

    def __init__(
        self,
        config: AssessmentConfig | None = None,
        collectors: Optional[Iterable[Collector]] = None,
        estimator: FallbackEstimator | None = None,
        assembler: ReportAssembler | None = None,
        store: ReportStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or AssessmentConfig()
        self.estimator = estimator or FallbackEstimator()
        if collectors is None:
            context = CollectorContext.from_config(self.config, estimator=self.estimator)
            collectors = discover_collectors(context)
        self.collectors: List[Collector] = list(collectors)
        self.assembler = assembler or ReportAssembler(
            self.config.weights,
            RecommendationGenerator(
                per_signal=self.config.recommendations.per_signal,
                limit=self.config.recommendations.limit,
            ),
            # Unweighted plugin collectors still report but do not count toward completeness.
            expected=[
                collector.name
                for collector in self.collectors
                if collector.name in self.config.weights
            ],
        )
        self.store = store
        self.clock = clock or _utcnow
        self.logger = get_logger("orchestrator")

    def assess(self, owner: str, repo: str) -> AssessmentReport:
        """Assess ``owner/repo``; raises ValueError for malformed identifiers."""
        return self.assess_request(AssessmentRequest(owner=owner, repo=repo))

    def assess_request(self, request: AssessmentRequest) -> AssessmentReport:
        return self._execute(AssessmentRun(request=request))

    def run(self, request: AssessmentRequest) -> AssessmentRun:
        run = AssessmentRun(request=request)
        self._execute(run)
        return run

    def _execute(self, run: AssessmentRun) -> AssessmentReport:
        request = run.request
        started_at = self.clock()
        self._advance(run, AssessmentState.COLLECTING)
        self.logger.info("Assessing %s with %d collectors", request.slug, len(self.collectors))

        signals = self._collect_all(request)

        self._advance(run, AssessmentState.AGGREGATING)
        report = self.assembler.assemble(
            request, signals, started_at=started_at, finished_at=self.clock()
        )
        run.report = report
        self._persist(report)
        self._advance(run, AssessmentState.DONE)
        self.logger.info(
            "Assessment of %s finished: overall %.1f (%s confidence)",
            request.slug,
            report.scores.overall,
            report.scores.confidence_label.value,
        )
        return report

    def _collect_all(self, request: AssessmentRequest) -> List[SignalResult]:
        timeout = self.config.collectors.timeout
        executor = ThreadPoolExecutor(
            max_workers=max(1, len(self.collectors)),
            thread_name_prefix="repohealth-collector",
        )
        try:
            futures: List[Tuple[Collector, Future[SignalResult]]] = [
                (collector, executor.submit(collector.collect, request))
                for collector in self.collectors
            ]
            done, _ = wait([future for _, future in futures], timeout=timeout)
            results: List[SignalResult] = []
            for collector, future in futures:
                if future in done:
                    results.append(self._resolve(collector, future, request))
                    continue
                future.cancel()
                reason = f"timed out after {timeout:g}s"
                self.logger.warning("%s collector for %s %s", collector.name, request.slug, reason)
                results.append(
                    self.estimator.estimate(
                        collector.name,
                        request,
                        reason=reason,
                        error=NetworkTimeout(f"{collector.name} collector {reason}"),
                    )
                )
            return results
        finally:
            # Abandoned collector threads finish in the background; their results are ignored.
            executor.shutdown(wait=False, cancel_futures=True)

    def _resolve(
        self, collector: Collector, future: Future[SignalResult], request: AssessmentRequest
    ) -> SignalResult:
        try:
            return future.result()
        except Exception as exc:  # pragma: no cover - defensive guard
            self._log_exception(f"{collector.name} collector raised for {request.slug}", exc)
            return self.estimator.estimate(
                collector.name, request, reason=f"unexpected {type(exc).__name__}: {exc}", error=exc
            )

    def _persist(self, report: AssessmentReport) -> None:
        if self.store is None:
            return
        try:
            self.store.save(report)
            self.store.persist()
        except Exception as exc:
            self._log_exception("Failed to persist assessment report", exc)

    def _advance(self, run: AssessmentRun, target: AssessmentState) -> None:
        previous = run.state
        run.advance(target, at=self.clock())
        self.logger.debug(
            "%s: %s -> %s", run.request.slug, previous.value, target.value
        )

    def _log_exception(self, message: str, exc: Exception) -> None:
        if is_verbose(self.logger):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


def assess_repository(
    owner: str, repo: str, *, config: AssessmentConfig | None = None
) -> AssessmentReport:
    """Assess a repository with default collectors and configuration from the environment."""
    return Orchestrator(config=config or load_config()).assess(owner, repo)


__all__ = [
    "AssessmentRun",
    "AssessmentState",
    "Orchestrator",
    "assess_repository",
]
