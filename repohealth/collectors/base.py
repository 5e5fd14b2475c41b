"""Base classes and shared plumbing for signal collectors."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable, Dict, Iterable, Iterator, List, Sequence, TypeVar

from ..config import AssessmentConfig
from ..errors import FetchError, NotFound
from ..fallback import FallbackEstimator
from ..http import RetryingHTTPClient
from ..logging import get_logger, is_verbose
from ..metrics import MetricExtractor, RegexMetricExtractor
from ..models import AssessmentRequest, SignalResult
from ..sources import GitHubClient, NpmRegistry, PackageRegistry, PyPIRegistry
from ..sources.github import build_github_headers

T = TypeVar("T")
R = TypeVar("R")


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class CollectorContext:
    """Collaborators injected into every collector; nothing is read from globals."""

    config: AssessmentConfig
    github: GitHubClient
    registries: Dict[str, PackageRegistry] = field(default_factory=dict)
    estimator: FallbackEstimator = field(default_factory=FallbackEstimator)
    extractor: MetricExtractor = field(default_factory=RegexMetricExtractor)
    clock: Callable[[], datetime] = _utcnow
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def from_config(
        cls,
        config: AssessmentConfig,
        *,
        estimator: FallbackEstimator | None = None,
        extractor: MetricExtractor | None = None,
    ) -> "CollectorContext":
        """Wire real HTTP-backed sources from configuration."""
        settings = config.http
        github_http = RetryingHTTPClient(
            headers=build_github_headers(config.github_token, user_agent=settings.user_agent),
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            backoff_base=settings.backoff_base,
            backoff_cap=settings.backoff_cap,
        )
        registry_http = RetryingHTTPClient(
            headers={"Accept": "application/json", "User-Agent": settings.user_agent},
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            backoff_base=settings.backoff_base,
            backoff_cap=settings.backoff_cap,
        )
        return cls(
            config=config,
            github=GitHubClient(
                github_http,
                base_url=config.sources.api_base_url,
                raw_base_url=config.sources.raw_base_url,
            ),
            registries={
                "npm": NpmRegistry(registry_http, config.sources.npm_registry_url),
                "pypi": PyPIRegistry(registry_http, config.sources.pypi_url),
            },
            estimator=estimator or FallbackEstimator(),
            extractor=extractor or RegexMetricExtractor(),
        )


class Collector(ABC):
    """Contract for collectors that turn external data into one SignalResult."""

    name: str = ""

    def __init__(self, context: CollectorContext) -> None:
        self.context = context
        self.logger = get_logger(f"collectors.{self.name or 'custom'}")

    def collect(self, request: AssessmentRequest) -> SignalResult:
        """Return a result for ``request``; failures are folded into the value."""
        try:
            return self._collect(request)
        except NotFound as exc:
            self.logger.info("%s: resource missing for %s (%s)", self.name, request.slug, exc)
            return self._on_missing(request, exc)
        except FetchError as exc:
            self.logger.warning(
                "%s collection degraded for %s: %s", self.name, request.slug, exc
            )
            return self._estimate(request, str(exc), exc)
        except Exception as exc:  # pragma: no cover - defensive guard
            self._log_exception(f"{self.name} collector crashed for {request.slug}", exc)
            return self._estimate(request, f"unexpected {type(exc).__name__}: {exc}", exc)

    @abstractmethod
    def _collect(self, request: AssessmentRequest) -> SignalResult:
        """Gather data and compute the signal; may raise FetchError."""

    def _on_missing(self, request: AssessmentRequest, exc: NotFound) -> SignalResult:
        return self._estimate(request, str(exc), exc)

    def _estimate(
        self, request: AssessmentRequest, reason: str, exc: BaseException | None
    ) -> SignalResult:
        return self.context.estimator.estimate(self.name, request, reason=reason, error=exc)

    def _batched(self, items: Sequence[T], worker: Callable[[T], R]) -> List[R]:
        """Apply ``worker`` to items in fixed-size groups with a delay between groups."""
        settings = self.context.config.collectors
        results: List[R] = []
        for index, group in enumerate(batched(items, settings.batch_size)):
            if index and settings.batch_delay > 0:
                self.context.sleep(settings.batch_delay)
            results.extend(worker(item) for item in group)
        return results

    def _log_exception(self, message: str, exc: Exception) -> None:
        if is_verbose(self.logger):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


def batched(items: Iterable[T], size: int) -> Iterator[List[T]]:
    """Yield successive lists of at most ``size`` items."""
    group: List[T] = []
    for item in items:
        group.append(item)
        if len(group) >= max(1, size):
            yield group
            group = []
    if group:
        yield group


__all__ = ["Collector", "CollectorContext", "batched"]
