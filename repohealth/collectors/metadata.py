"""Source-metadata collector: popularity, activity, community, and health."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..errors import FetchError
from ..models import METADATA, AssessmentRequest, Priority, Recommendation, SignalResult
from ..sources.github import (
    CommitRecord,
    ContributorRecord,
    IssueCounts,
    ReleaseRecord,
    RepositoryRecord,
)
from .base import Collector

T = TypeVar("T")


@dataclass(frozen=True)
class Thresholds:
    """EXCELLENT/GOOD/AVERAGE/POOR cut-offs for a count metric."""

    excellent: int
    good: int
    average: int
    poor: int


STARS = Thresholds(10000, 1000, 100, 10)
FORKS = Thresholds(1000, 100, 10, 1)
WATCHERS = Thresholds(1000, 100, 10, 1)
COMMITS = Thresholds(1000, 500, 100, 10)
CONTRIBUTORS = Thresholds(50, 10, 3, 1)

SUB_SCORE_WEIGHTS = {
    "popularity": 0.25,
    "activity": 0.25,
    "community": 0.25,
    "health": 0.25,
}


def metric_level(value: int, thresholds: Thresholds) -> str:
    if value >= thresholds.excellent:
        return "EXCELLENT"
    if value >= thresholds.good:
        return "GOOD"
    if value >= thresholds.average:
        return "AVERAGE"
    if value >= thresholds.poor:
        return "POOR"
    return "VERY_POOR"


def metric_score(value: int, thresholds: Thresholds) -> int:
    """Map a count onto 100/80/60/40, interpolating linearly below POOR."""
    if value >= thresholds.excellent:
        return 100
    if value >= thresholds.good:
        return 80
    if value >= thresholds.average:
        return 60
    if value >= thresholds.poor:
        return 40
    return min(round(value / thresholds.poor * 40), 100)


def release_score(releases: int) -> float:
    if releases == 0:
        return 20.0
    if releases >= 10:
        return 100.0
    return releases / 10 * 100


def issues_score(issues: IssueCounts) -> float:
    total = len(issues.open) + len(issues.closed)
    if total == 0:
        return 80.0
    return len(issues.closed) / total * 100


def health_score(
    repository: RepositoryRecord, open_ratio: float, days_since_push: Optional[int]
) -> float:
    score = 100.0 - min(open_ratio, 50.0)
    if days_since_push is not None:
        if days_since_push > 365:
            score -= 30
        elif days_since_push > 90:
            score -= 20
        elif days_since_push > 30:
            score -= 10
    if repository.license_name:
        score += 5
    if repository.has_wiki:
        score += 5
    if repository.topics:
        score += 5
    return max(0.0, min(100.0, score))


def commit_frequency(commits: List[CommitRecord], now: datetime) -> str:
    """Classify commits per week over the last 90 days."""
    window_start = now - timedelta(days=90)
    recent = [c for c in commits if c.authored_at and c.authored_at >= window_start]
    per_week = len(recent) / (90 / 7)
    if per_week >= 10:
        return "very-active"
    if per_week >= 3:
        return "active"
    if per_week >= 1:
        return "moderate"
    if per_week > 0:
        return "low"
    return "inactive"


def activity_trend(commits: List[CommitRecord], now: datetime) -> str:
    """Compare the last 90 days of commits with the 90 days before them."""
    recent_start = now - timedelta(days=90)
    previous_start = now - timedelta(days=180)
    recent = sum(1 for c in commits if c.authored_at and c.authored_at >= recent_start)
    previous = sum(
        1
        for c in commits
        if c.authored_at and previous_start <= c.authored_at < recent_start
    )
    if recent == previous:
        return "stable"
    if previous == 0:
        return "increasing"
    change = (recent - previous) / previous
    if change > 0.2:
        return "increasing"
    if change < -0.2:
        return "decreasing"
    return "stable"


class MetadataCollector(Collector):
    """Scores repository metadata from the source-hosting API."""

    name = METADATA

    def _collect(self, request: AssessmentRequest) -> SignalResult:
        github = self.context.github
        owner, repo = request.owner, request.repo
        repository = github.repository(owner, repo)

        contributors = self._optional("contributors", lambda: github.contributors(owner, repo), [])
        commits = self._optional("commits", lambda: github.commits(owner, repo), [])
        releases = self._optional("releases", lambda: github.releases(owner, repo), [])
        issues = IssueCounts(
            open=self._optional("open issues", lambda: github.issues(owner, repo, "open"), []),
            closed=self._optional(
                "closed issues", lambda: github.issues(owner, repo, "closed"), []
            ),
        )
        languages = self._optional("languages", lambda: github.languages(owner, repo), {})

        now = self.context.clock()
        return self._score(repository, contributors, commits, releases, issues, languages, now)

    def _optional(self, what: str, fetch: Callable[[], T], default: T) -> T:
        try:
            return fetch()
        except FetchError as exc:
            self.logger.warning("Failed to fetch %s: %s", what, exc)
            return default

    def _score(
        self,
        repository: RepositoryRecord,
        contributors: List[ContributorRecord],
        commits: List[CommitRecord],
        releases: List[ReleaseRecord],
        issues: IssueCounts,
        languages: Dict[str, int],
        now: datetime,
    ) -> SignalResult:
        stars_score = metric_score(repository.stars, STARS)
        forks_score = metric_score(repository.forks, FORKS)
        watchers_score = metric_score(repository.watchers, WATCHERS)
        popularity = round((stars_score + forks_score + watchers_score) / 3)

        commit_total = len(commits)
        commit_points = metric_score(commit_total, COMMITS)
        activity = round((commit_points + release_score(len(releases))) / 2)

        contributor_points = metric_score(len(contributors), CONTRIBUTORS)
        community = round((contributor_points + issues_score(issues)) / 2)

        total_issues = len(issues.open) + len(issues.closed)
        open_ratio = len(issues.open) / total_issues * 100 if total_issues else 0.0
        last_push = repository.pushed_at or repository.updated_at
        days_since_push = (now - last_push).days if last_push else None
        health = round(health_score(repository, open_ratio, days_since_push))

        sub_scores = {
            "popularity": popularity,
            "activity": activity,
            "community": community,
            "health": health,
        }
        score = sum(sub_scores[key] * weight for key, weight in SUB_SCORE_WEIGHTS.items())

        recent_commits = sum(
            1 for c in commits if c.authored_at and c.authored_at > now - timedelta(days=30)
        )
        quarter_commits = sum(
            1 for c in commits if c.authored_at and c.authored_at > now - timedelta(days=90)
        )
        recent_releases = sum(
            1 for r in releases if r.created_at and r.created_at > now - timedelta(days=90)
        )

        metrics: Dict[str, Any] = {
            "repository": repository.full_name,
            "description": repository.description,
            "stars": repository.stars,
            "forks": repository.forks,
            "watchers": repository.watchers,
            "stars_level": metric_level(repository.stars, STARS),
            "license": repository.license_name,
            "topics": list(repository.topics),
            "archived": repository.archived,
            "default_branch": repository.default_branch,
            "contributors": len(contributors),
            "contributor_concentration": _top_share(contributors),
            "top_contributors": _top_contributors(contributors),
            "commits": commit_total,
            "recent_commits": recent_commits,
            "quarter_commits": quarter_commits,
            "commit_frequency": commit_frequency(commits, now),
            "commit_trend": activity_trend(commits, now),
            "releases": len(releases),
            "recent_releases": recent_releases,
            "latest_release": releases[0].tag_name if releases else None,
            "open_issues": len(issues.open),
            "closed_issues": len(issues.closed),
            "open_issue_ratio": round(open_ratio),
            "days_since_push": days_since_push,
            "primary_language": _primary_language(languages),
            "languages": _language_distribution(languages),
            "sub_scores": sub_scores,
        }

        confidence = 1.0
        if repository.private:
            confidence *= 0.8
        if repository.created_at and (now - repository.created_at).days < 30:
            confidence *= 0.7
        if quarter_commits == 0:
            confidence *= 0.6

        recommendations = _recommendations(
            repository,
            contributors=len(contributors),
            recent_commits=recent_commits,
            releases=len(releases),
            recent_releases=recent_releases,
            open_ratio=open_ratio,
            days_since_push=days_since_push,
        )
        return SignalResult.collected(
            self.name,
            score=score,
            confidence=confidence,
            metrics=metrics,
            recommendations=recommendations,
        )


def _top_contributors(contributors: List[ContributorRecord]) -> List[Dict[str, Any]]:
    total = sum(c.contributions for c in contributors)
    ranked = sorted(contributors, key=lambda c: c.contributions, reverse=True)[:5]
    return [
        {
            "login": c.login,
            "contributions": c.contributions,
            "percentage": round(c.contributions / total * 100) if total else 0,
        }
        for c in ranked
    ]


def _top_share(contributors: List[ContributorRecord]) -> float:
    total = sum(c.contributions for c in contributors)
    if not total:
        return 0.0
    return round(max(c.contributions for c in contributors) / total, 3)


def _primary_language(languages: Dict[str, int]) -> Optional[str]:
    if not languages:
        return None
    return Counter(languages).most_common(1)[0][0]


def _language_distribution(languages: Dict[str, int]) -> List[Dict[str, Any]]:
    total = sum(languages.values())
    if not total:
        return []
    return [
        {"language": name, "bytes": size, "percentage": round(size / total * 100)}
        for name, size in Counter(languages).most_common()
    ]


def _recommendations(
    repository: RepositoryRecord,
    *,
    contributors: int,
    recent_commits: int,
    releases: int,
    recent_releases: int,
    open_ratio: float,
    days_since_push: Optional[int],
) -> List[Recommendation]:
    recs: List[Recommendation] = []

    if repository.stars < 50:
        recs.append(
            Recommendation(
                category="popularity",
                priority=Priority.HIGH,
                message="Very low star count indicates limited visibility",
                suggested_action="Improve the README, add clear examples, and share the project where its users gather",
            )
        )
    elif repository.stars < 200:
        recs.append(
            Recommendation(
                category="popularity",
                priority=Priority.MEDIUM,
                message="Moderate star count with room for growth",
                suggested_action="Add tutorials and engage with the developer community",
            )
        )

    if recent_commits == 0:
        recs.append(
            Recommendation(
                category="activity",
                priority=Priority.CRITICAL,
                message="No recent commits detected - project appears inactive",
                suggested_action="Regular commits show active development; update dependencies or address open issues",
            )
        )
    elif recent_commits < 5:
        recs.append(
            Recommendation(
                category="activity",
                priority=Priority.MEDIUM,
                message="Low recent activity detected",
                suggested_action="Increase activity with regular updates, bug fixes, and improvements",
            )
        )

    if releases == 0:
        recs.append(
            Recommendation(
                category="releases",
                priority=Priority.MEDIUM,
                message="No releases found",
                suggested_action="Create versioned releases so users can track stable versions",
            )
        )
    elif recent_releases == 0:
        recs.append(
            Recommendation(
                category="releases",
                priority=Priority.LOW,
                message="No recent releases",
                suggested_action="Cut a new release if significant changes have landed",
            )
        )

    if contributors == 1:
        recs.append(
            Recommendation(
                category="community",
                priority=Priority.MEDIUM,
                message="Single contributor project",
                suggested_action="Add CONTRIBUTING.md and label good first issues",
            )
        )
    elif 1 < contributors < 5:
        recs.append(
            Recommendation(
                category="community",
                priority=Priority.LOW,
                message="Small contributor base",
                suggested_action="Encourage contributions with beginner-friendly issues",
            )
        )

    if days_since_push is not None:
        if days_since_push > 365:
            recs.append(
                Recommendation(
                    category="health",
                    priority=Priority.CRITICAL,
                    message="Repository appears abandoned (no updates in over a year)",
                    suggested_action="Update dependencies and fix security issues, or archive the repository",
                )
            )
        elif days_since_push > 180:
            recs.append(
                Recommendation(
                    category="health",
                    priority=Priority.HIGH,
                    message="Repository has been inactive for several months",
                    suggested_action="Review dependencies, address open issues, and communicate maintenance status",
                )
            )
        elif days_since_push > 90:
            recs.append(
                Recommendation(
                    category="health",
                    priority=Priority.MEDIUM,
                    message="Repository has not been updated recently",
                    suggested_action="Schedule regular maintenance to keep the project healthy",
                )
            )

    if open_ratio > 70:
        recs.append(
            Recommendation(
                category="issues",
                priority=Priority.HIGH,
                message="Very high ratio of open issues",
                suggested_action="Close stale issues, improve triage, and add issue templates",
            )
        )
    elif open_ratio > 50:
        recs.append(
            Recommendation(
                category="issues",
                priority=Priority.MEDIUM,
                message="High ratio of open issues",
                suggested_action="Review open issues and close those that are resolved",
            )
        )

    if not repository.license_name:
        recs.append(
            Recommendation(
                category="documentation",
                priority=Priority.MEDIUM,
                message="No license detected",
                suggested_action="Add a LICENSE file to clarify how others can use the code",
            )
        )

    return recs[:8]


__all__ = [
    "MetadataCollector",
    "Thresholds",
    "health_score",
    "issues_score",
    "metric_level",
    "metric_score",
    "release_score",
]
