"""In-memory stand-ins for the GitHub API and package registries."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Dict, List, Mapping, Optional

from repohealth.collectors import Collector, CollectorContext
from repohealth.config import AssessmentConfig, CollectorSettings
from repohealth.errors import NotFound
from repohealth.models import AssessmentRequest, SignalResult
from repohealth.sources import PackageRecord, PackageRegistry, RepositoryRecord, TreeEntry
from repohealth.sources.github import CommitRecord, ContributorRecord, IssueRecord, ReleaseRecord

NOW = datetime(2024, 6, 1, tzinfo=UTC)


def days_ago(days: int) -> datetime:
    return NOW - timedelta(days=days)


class FakeGitHub:
    """Serves canned records; ``errors`` maps a method name or file path to an exception."""

    def __init__(
        self,
        *,
        repository: Optional[RepositoryRecord] = None,
        files: Optional[Mapping[str, str]] = None,
        tree: Optional[List[TreeEntry]] = None,
        contributors: Optional[List[ContributorRecord]] = None,
        commits: Optional[List[CommitRecord]] = None,
        releases: Optional[List[ReleaseRecord]] = None,
        open_issues: Optional[List[IssueRecord]] = None,
        closed_issues: Optional[List[IssueRecord]] = None,
        languages: Optional[Dict[str, int]] = None,
        errors: Optional[Mapping[str, Exception]] = None,
    ) -> None:
        self._repository = repository or RepositoryRecord(name="widget", full_name="acme/widget")
        self.files = dict(files or {})
        self._tree = list(tree or [])
        self._contributors = list(contributors or [])
        self._commits = list(commits or [])
        self._releases = list(releases or [])
        self._open = list(open_issues or [])
        self._closed = list(closed_issues or [])
        self._languages = dict(languages or {})
        self.errors = dict(errors or {})
        self.file_requests: List[str] = []
        self.tree_refs: List[str] = []

    def _maybe_raise(self, key: str) -> None:
        error = self.errors.get(key)
        if error is not None:
            raise error

    def repository(self, owner: str, repo: str) -> RepositoryRecord:
        self._maybe_raise("repository")
        return self._repository

    def contributors(self, owner: str, repo: str) -> List[ContributorRecord]:
        self._maybe_raise("contributors")
        return list(self._contributors)

    def commits(self, owner: str, repo: str) -> List[CommitRecord]:
        self._maybe_raise("commits")
        return list(self._commits)

    def releases(self, owner: str, repo: str) -> List[ReleaseRecord]:
        self._maybe_raise("releases")
        return list(self._releases)

    def issues(self, owner: str, repo: str, state: str) -> List[IssueRecord]:
        self._maybe_raise("issues")
        return list(self._open if state == "open" else self._closed)

    def languages(self, owner: str, repo: str) -> Dict[str, int]:
        self._maybe_raise("languages")
        return dict(self._languages)

    def tree(self, owner: str, repo: str, ref: str = "HEAD") -> List[TreeEntry]:
        self._maybe_raise("tree")
        self.tree_refs.append(ref)
        return list(self._tree)

    def file_text(self, owner: str, repo: str, path: str) -> str:
        self.file_requests.append(path)
        self._maybe_raise(path)
        if path not in self.files:
            raise NotFound(f"{path} not found in {owner}/{repo}")
        return self.files[path]


class FakeRegistry(PackageRegistry):
    """Registry answering from a dict of records; ``errors`` maps names to exceptions."""

    def __init__(
        self,
        records: Optional[Mapping[str, PackageRecord]] = None,
        errors: Optional[Mapping[str, Exception]] = None,
    ) -> None:
        self.records = dict(records or {})
        self.errors = dict(errors or {})
        self.lookups: List[str] = []

    def lookup(self, package: str) -> PackageRecord:
        self.lookups.append(package)
        if package in self.errors:
            raise self.errors[package]
        if package not in self.records:
            raise NotFound(f"{package} is not published")
        return self.records[package]


def make_config(**collector_overrides: object) -> AssessmentConfig:
    """Default config with batching delays disabled unless overridden."""
    settings = replace(CollectorSettings(batch_delay=0.0), **collector_overrides)
    return AssessmentConfig(collectors=settings)


def make_context(
    github: FakeGitHub,
    *,
    registries: Optional[Dict[str, PackageRegistry]] = None,
    config: Optional[AssessmentConfig] = None,
    sleeps: Optional[List[float]] = None,
) -> CollectorContext:
    recorded = sleeps if sleeps is not None else []
    return CollectorContext(
        config=config or make_config(),
        github=github,  # type: ignore[arg-type]
        registries=dict(registries or {}),
        clock=lambda: NOW,
        sleep=recorded.append,
    )


class StaticCollector(Collector):
    """Returns a fixed result, optionally after waiting on an event."""

    def __init__(
        self,
        context: CollectorContext,
        name: str,
        result: SignalResult,
        *,
        block: Optional[threading.Event] = None,
    ) -> None:
        self.name = name
        super().__init__(context)
        self.result = result
        self.block = block
        self.calls = 0

    def _collect(self, request: AssessmentRequest) -> SignalResult:
        self.calls += 1
        if self.block is not None:
            self.block.wait(timeout=5)
        return self.result


__all__ = [
    "FakeGitHub",
    "FakeRegistry",
    "NOW",
    "StaticCollector",
    "days_ago",
    "make_config",
    "make_context",
]
