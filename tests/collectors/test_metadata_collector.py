"""Tests for the source-metadata collector."""

from __future__ import annotations

from repohealth.collectors.metadata import (
    STARS,
    MetadataCollector,
    activity_trend,
    metric_level,
    metric_score,
)
from repohealth.errors import NotFound, RateLimited
from repohealth.models import MAX_DEGRADED_CONFIDENCE, METADATA
from repohealth.sources import RepositoryRecord
from repohealth.sources.github import CommitRecord, ContributorRecord, IssueRecord, ReleaseRecord
from tests._fixtures.fakes import NOW, FakeGitHub, days_ago, make_context


def _popular_repo() -> FakeGitHub:
    return FakeGitHub(
        repository=RepositoryRecord(
            name="widget",
            full_name="acme/widget",
            stars=15000,
            forks=1200,
            watchers=1500,
            license_name="MIT License",
            has_wiki=True,
            topics=("cli",),
            created_at=days_ago(2000),
            pushed_at=days_ago(2),
        ),
        contributors=[ContributorRecord(f"dev{i}", 100 - i) for i in range(60)],
        commits=[CommitRecord(f"sha{i}", days_ago(i % 80)) for i in range(1200)],
        releases=[ReleaseRecord(f"v{i}", created_at=days_ago(i * 20)) for i in range(12)],
        open_issues=[IssueRecord(1, "open")],
        closed_issues=[IssueRecord(n, "closed") for n in range(2, 11)],
        languages={"Python": 9000, "Shell": 1000},
    )


def test_metric_levels_follow_thresholds() -> None:
    assert metric_level(10000, STARS) == "EXCELLENT"
    assert metric_level(150, STARS) == "AVERAGE"
    assert metric_level(3, STARS) == "VERY_POOR"
    assert metric_score(5, STARS) == 20


def test_activity_trend_compares_quarters() -> None:
    commits = [CommitRecord("a", days_ago(10)), CommitRecord("b", days_ago(20))]
    assert activity_trend(commits, NOW) == "increasing"
    assert activity_trend([], NOW) == "stable"


def test_popular_repository_scores_high(assessment_request) -> None:
    collector = MetadataCollector(make_context(_popular_repo()))

    result = collector.collect(assessment_request)

    assert result.signal_name == METADATA
    assert result.succeeded is True
    assert result.score >= 90
    assert result.confidence == 1.0
    metrics = result.metrics
    assert metrics["stars_level"] == "EXCELLENT"
    assert metrics["primary_language"] == "Python"
    assert metrics["commit_frequency"] == "very-active"
    assert set(metrics["sub_scores"]) == {"popularity", "activity", "community", "health"}


def test_quiet_repository_gets_recommendations_and_lower_confidence(assessment_request) -> None:
    github = FakeGitHub(
        repository=RepositoryRecord(
            name="widget",
            full_name="acme/widget",
            stars=2,
            created_at=days_ago(800),
            pushed_at=days_ago(400),
        ),
        contributors=[ContributorRecord("solo", 12)],
    )

    result = MetadataCollector(make_context(github)).collect(assessment_request)

    assert result.succeeded is True
    assert result.score < 60
    assert result.confidence < 1.0
    assert result.metrics["days_since_push"] == 400
    assert result.recommendations


def test_optional_subresource_failures_degrade_gracefully(assessment_request) -> None:
    github = _popular_repo()
    github.errors["contributors"] = RateLimited("slow down")

    result = MetadataCollector(make_context(github)).collect(assessment_request)

    assert result.succeeded is True
    assert result.metrics["contributors"] == 0


def test_missing_repository_falls_back_to_estimate(assessment_request) -> None:
    github = FakeGitHub(errors={"repository": NotFound("acme/widget was not found")})

    result = MetadataCollector(make_context(github)).collect(assessment_request)

    assert result.succeeded is False
    assert result.estimated is True
    assert result.confidence <= MAX_DEGRADED_CONFIDENCE
    assert result.metrics["error_kind"] == "not_found"


def test_rate_limit_on_repository_falls_back_with_token_hint(assessment_request) -> None:
    github = FakeGitHub(errors={"repository": RateLimited("rate limit exceeded")})

    result = MetadataCollector(make_context(github)).collect(assessment_request)

    assert result.succeeded is False
    assert "rate limit exceeded" in (result.failure_reason or "")
    assert any("GITHUB_TOKEN" in rec.suggested_action for rec in result.recommendations)
