"""Repository URL parsing and validation."""

from __future__ import annotations

import re

from .models import OWNER_PATTERN, REPO_PATTERN, AssessmentRequest

_PREFIXES = (
    re.compile(r"^https?://(?:www\.)?github\.com/", re.IGNORECASE),
    re.compile(r"^(?:www\.)?github\.com/", re.IGNORECASE),
    re.compile(r"^git@github\.com:", re.IGNORECASE),
)


def parse_repository_url(url: str) -> AssessmentRequest:
    """Return the request for a GitHub URL or ``owner/repo`` shorthand.

    Raises ValueError when the input does not identify a repository.
    """
    if not isinstance(url, str) or not url.strip():
        raise ValueError("Repository URL must be a non-empty string")
    text = url.strip()
    for prefix in _PREFIXES:
        stripped = prefix.sub("", text, count=1)
        if stripped != text:
            text = stripped
            break
    else:
        if "://" in text or text.startswith("git@"):
            raise ValueError(f"Only github.com repositories are supported: {url!r}")

    text = text.split("?", 1)[0].split("#", 1)[0].rstrip("/")
    if text.endswith(".git"):
        text = text[: -len(".git")]

    parts = text.split("/")
    if len(parts) < 2:
        raise ValueError(f"Expected owner/repo in {url!r}")
    owner, repo = parts[0], parts[1]
    if len(parts) > 2 and parts[2] not in {"tree", "blob", "issues", "pulls", "wiki", "releases"}:
        raise ValueError(f"Unexpected path after owner/repo in {url!r}")
    if not OWNER_PATTERN.match(owner):
        raise ValueError(f"Invalid repository owner: {owner!r}")
    if not REPO_PATTERN.match(repo) or repo in {".", ".."}:
        raise ValueError(f"Invalid repository name: {repo!r}")
    return AssessmentRequest(owner=owner, repo=repo)


__all__ = ["parse_repository_url"]
