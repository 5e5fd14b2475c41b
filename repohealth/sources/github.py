"""Typed access to the GitHub REST API."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..errors import NotFound, ParseError
from ..http import RetryingHTTPClient
from ..logging import get_logger
from .base import (
    expect_list,
    expect_mapping,
    optional_int,
    optional_str,
    parse_timestamp,
    require_str,
)

_ACCEPT = "application/vnd.github.v3+json"
_BEARER_PREFIXES = ("ghp_", "gho_", "ghu_", "ghs_", "github_pat_")
_PLACEHOLDER_TOKENS = {
    "your_github_token_here",
    "your_token_here",
    "changeme",
    "<token>",
}
_RAW_BRANCH_FALLBACKS = ("main", "master")


@dataclass(frozen=True)
class RepositoryRecord:
    """Repository metadata; ``name`` and ``full_name`` are required."""

    name: str
    full_name: str
    description: Optional[str] = None
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    open_issues: int = 0
    size: int = 0
    default_branch: str = "main"
    private: bool = False
    fork: bool = False
    archived: bool = False
    has_wiki: bool = False
    has_pages: bool = False
    license_name: Optional[str] = None
    topics: tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RepositoryRecord":
        data = expect_mapping(payload, "repository")
        license_data = data.get("license")
        license_name = None
        if isinstance(license_data, dict):
            license_name = optional_str(license_data, "name") or optional_str(
                license_data, "spdx_id"
            )
        topics = data.get("topics")
        return cls(
            name=require_str(data, "name", "repository"),
            full_name=require_str(data, "full_name", "repository"),
            description=optional_str(data, "description"),
            stars=optional_int(data, "stargazers_count"),
            forks=optional_int(data, "forks_count"),
            watchers=optional_int(data, "watchers_count"),
            open_issues=optional_int(data, "open_issues_count"),
            size=optional_int(data, "size"),
            default_branch=optional_str(data, "default_branch") or "main",
            private=bool(data.get("private")),
            fork=bool(data.get("fork")),
            archived=bool(data.get("archived")),
            has_wiki=bool(data.get("has_wiki")),
            has_pages=bool(data.get("has_pages")),
            license_name=license_name,
            topics=tuple(t for t in topics if isinstance(t, str)) if isinstance(topics, list) else (),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            pushed_at=parse_timestamp(data.get("pushed_at")),
        )


@dataclass(frozen=True)
class ContributorRecord:
    login: str
    contributions: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "ContributorRecord":
        data = expect_mapping(payload, "contributor")
        login = optional_str(data, "login") or optional_str(data, "name") or "anonymous"
        return cls(login=login, contributions=optional_int(data, "contributions"))


@dataclass(frozen=True)
class CommitRecord:
    sha: str
    authored_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "CommitRecord":
        data = expect_mapping(payload, "commit")
        commit = data.get("commit")
        authored_at = None
        if isinstance(commit, dict):
            for role in ("author", "committer"):
                person = commit.get(role)
                if isinstance(person, dict):
                    authored_at = parse_timestamp(person.get("date"))
                    if authored_at is not None:
                        break
        return cls(sha=require_str(data, "sha", "commit"), authored_at=authored_at)


@dataclass(frozen=True)
class ReleaseRecord:
    tag_name: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    prerelease: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> "ReleaseRecord":
        data = expect_mapping(payload, "release")
        return cls(
            tag_name=require_str(data, "tag_name", "release"),
            name=optional_str(data, "name"),
            created_at=parse_timestamp(data.get("published_at") or data.get("created_at")),
            prerelease=bool(data.get("prerelease")),
        )


@dataclass(frozen=True)
class IssueRecord:
    number: int
    state: str
    is_pull_request: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> "IssueRecord":
        data = expect_mapping(payload, "issue")
        return cls(
            number=optional_int(data, "number"),
            state=optional_str(data, "state") or "open",
            is_pull_request="pull_request" in data,
        )


@dataclass(frozen=True)
class TreeEntry:
    path: str
    type: str = "blob"
    size: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "TreeEntry":
        data = expect_mapping(payload, "tree entry")
        return cls(
            path=require_str(data, "path", "tree entry"),
            type=optional_str(data, "type") or "blob",
            size=optional_int(data, "size"),
        )


@dataclass
class IssueCounts:
    open: List[IssueRecord] = field(default_factory=list)
    closed: List[IssueRecord] = field(default_factory=list)


def resolve_token(token: Optional[str]) -> Optional[str]:
    """Drop placeholder or implausibly short tokens so requests run anonymously."""
    if not token:
        return None
    cleaned = token.strip()
    if len(cleaned) <= 10 or cleaned.lower() in _PLACEHOLDER_TOKENS:
        return None
    return cleaned


def build_github_headers(token: Optional[str], *, user_agent: str = "repohealth/1.0") -> Dict[str, str]:
    """Return the default headers for GitHub API calls."""
    headers = {"Accept": _ACCEPT, "User-Agent": user_agent}
    resolved = resolve_token(token)
    if resolved:
        scheme = "Bearer" if resolved.startswith(_BEARER_PREFIXES) else "token"
        headers["Authorization"] = f"{scheme} {resolved}"
    return headers


class GitHubClient:
    """Fetches repository resources and parses them into typed records."""

    def __init__(
        self,
        http: RetryingHTTPClient,
        *,
        base_url: str = "https://api.github.com",
        raw_base_url: str = "https://raw.githubusercontent.com",
    ) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.raw_base_url = raw_base_url.rstrip("/")
        self.logger = get_logger("sources.github")

    def repository(self, owner: str, repo: str) -> RepositoryRecord:
        return RepositoryRecord.from_payload(self._get(owner, repo, ""))

    def contributors(self, owner: str, repo: str) -> List[ContributorRecord]:
        payload = self._get_list(owner, repo, "/contributors", {"per_page": 100})
        return [ContributorRecord.from_payload(item) for item in payload]

    def commits(self, owner: str, repo: str) -> List[CommitRecord]:
        payload = self._get_list(owner, repo, "/commits", {"per_page": 100})
        return [CommitRecord.from_payload(item) for item in payload]

    def releases(self, owner: str, repo: str) -> List[ReleaseRecord]:
        payload = self._get_list(owner, repo, "/releases", {"per_page": 100})
        return [ReleaseRecord.from_payload(item) for item in payload]

    def issues(self, owner: str, repo: str, state: str) -> List[IssueRecord]:
        payload = self._get_list(
            owner, repo, "/issues", {"state": state, "per_page": 100}
        )
        records = [IssueRecord.from_payload(item) for item in payload]
        return [record for record in records if not record.is_pull_request]

    def languages(self, owner: str, repo: str) -> Dict[str, int]:
        data = expect_mapping(self._get(owner, repo, "/languages"), "languages")
        return {
            str(name): int(size)
            for name, size in data.items()
            if isinstance(size, (int, float)) and not isinstance(size, bool)
        }

    def tree(self, owner: str, repo: str, ref: str = "HEAD") -> List[TreeEntry]:
        payload = expect_mapping(
            self._get(owner, repo, f"/git/trees/{quote(ref, safe='/')}", {"recursive": 1}),
            "tree",
        )
        entries = expect_list(payload.get("tree"), "tree entries")
        if payload.get("truncated"):
            self.logger.debug("Tree listing for %s/%s was truncated", owner, repo)
        return [TreeEntry.from_payload(item) for item in entries]

    def file_text(self, owner: str, repo: str, path: str) -> str:
        """Return file contents via the contents API, then raw main/master."""
        encoded_path = quote(path)
        try:
            payload = expect_mapping(
                self._get(owner, repo, f"/contents/{encoded_path}"), "contents"
            )
            return _decode_contents(payload, path)
        except NotFound:
            pass

        for branch in _RAW_BRANCH_FALLBACKS:
            url = f"{self.raw_base_url}/{owner}/{repo}/{branch}/{encoded_path}"
            try:
                return self.http.get_text(url)
            except NotFound:
                continue
        raise NotFound(f"{path} not found in {owner}/{repo}")

    def _get(
        self, owner: str, repo: str, suffix: str, params: Dict[str, Any] | None = None
    ) -> Any:
        url = f"{self.base_url}/repos/{owner}/{repo}{suffix}"
        response = self.http.fetch(url, params=params)
        if not response.body.strip():
            return {}
        return response.json()

    def _get_list(
        self, owner: str, repo: str, suffix: str, params: Dict[str, Any] | None = None
    ) -> List[Any]:
        url = f"{self.base_url}/repos/{owner}/{repo}{suffix}"
        response = self.http.fetch(url, params=params)
        # Empty repositories answer 204 with no body.
        if not response.body.strip():
            return []
        return expect_list(response.json(), suffix.strip("/") or "list")


def _decode_contents(payload: Dict[str, Any], path: str) -> str:
    content = payload.get("content")
    if not isinstance(content, str):
        raise ParseError(f"Contents payload for {path} has no content")
    if payload.get("encoding", "base64") != "base64":
        return content
    try:
        raw = base64.b64decode(content.replace("\n", ""), validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ParseError(f"Could not decode contents of {path}") from exc
    return raw.decode("utf-8", errors="replace")


__all__ = [
    "CommitRecord",
    "ContributorRecord",
    "GitHubClient",
    "IssueCounts",
    "IssueRecord",
    "ReleaseRecord",
    "RepositoryRecord",
    "TreeEntry",
    "build_github_headers",
    "resolve_token",
]
