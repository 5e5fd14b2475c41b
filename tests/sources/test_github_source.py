"""Tests for the typed GitHub client."""

from __future__ import annotations

import base64
import io
import json
from datetime import UTC, datetime
from urllib.error import HTTPError

import pytest

from repohealth.errors import NotFound, ParseError
from repohealth.http import RetryingHTTPClient
from repohealth.sources import GitHubClient, RepositoryRecord, build_github_headers
from repohealth.sources.github import resolve_token


class FakeResponse:
    def __init__(self, body: bytes):
        self._body = body
        self.status = 200
        self.headers = {}

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class RoutedOpener:
    """Answers URLs by prefix; anything unrouted is a 404."""

    def __init__(self, routes):
        self.routes = routes
        self.requested: list[str] = []

    def __call__(self, request, timeout=None):
        url = request.full_url
        self.requested.append(url)
        for prefix, payload in self.routes.items():
            if url.startswith(prefix):
                if isinstance(payload, bytes):
                    return FakeResponse(payload)
                return FakeResponse(json.dumps(payload).encode("utf-8"))
        raise HTTPError(url, 404, "Not Found", {}, io.BytesIO(b""))


def _client(routes) -> tuple[GitHubClient, RoutedOpener]:
    opener = RoutedOpener(routes)
    http = RetryingHTTPClient(opener=opener, sleep=lambda _: None)
    return GitHubClient(http, base_url="https://api.test", raw_base_url="https://raw.test"), opener


def test_repository_record_parses_payload() -> None:
    client, _ = _client(
        {
            "https://api.test/repos/acme/widget": {
                "name": "widget",
                "full_name": "acme/widget",
                "stargazers_count": 1200,
                "forks_count": 30,
                "default_branch": "trunk",
                "license": {"name": "MIT License", "spdx_id": "MIT"},
                "topics": ["cli", "tools"],
                "pushed_at": "2024-05-01T12:00:00Z",
            }
        }
    )

    record = client.repository("acme", "widget")

    assert isinstance(record, RepositoryRecord)
    assert record.stars == 1200
    assert record.default_branch == "trunk"
    assert record.license_name == "MIT License"
    assert record.topics == ("cli", "tools")
    assert record.pushed_at == datetime(2024, 5, 1, 12, tzinfo=UTC)


def test_repository_missing_required_field_is_parse_error() -> None:
    client, _ = _client({"https://api.test/repos/acme/widget": {"name": "widget"}})
    with pytest.raises(ParseError):
        client.repository("acme", "widget")


def test_issues_exclude_pull_requests() -> None:
    client, opener = _client(
        {
            "https://api.test/repos/acme/widget/issues": [
                {"number": 1, "state": "open"},
                {"number": 2, "state": "open", "pull_request": {"url": "x"}},
            ]
        }
    )

    issues = client.issues("acme", "widget", "open")

    assert [issue.number for issue in issues] == [1]
    assert "state=open" in opener.requested[0]


def test_empty_list_body_yields_empty_list() -> None:
    client, _ = _client({"https://api.test/repos/acme/widget/commits": b""})
    assert client.commits("acme", "widget") == []


def test_tree_requests_recursive_listing() -> None:
    client, opener = _client(
        {
            "https://api.test/repos/acme/widget/git/trees/main": {
                "tree": [
                    {"path": "src/app.py", "type": "blob", "size": 120},
                    {"path": "src", "type": "tree"},
                ]
            }
        }
    )

    entries = client.tree("acme", "widget", "main")

    assert [entry.path for entry in entries] == ["src/app.py", "src"]
    assert entries[0].size == 120
    assert opener.requested[0].endswith("?recursive=1")


def test_tree_keeps_slashes_in_branch_refs() -> None:
    client, opener = _client(
        {"https://api.test/repos/acme/widget/git/trees/release/1.x": {"tree": []}}
    )

    assert client.tree("acme", "widget", "release/1.x") == []
    assert opener.requested[0].startswith(
        "https://api.test/repos/acme/widget/git/trees/release/1.x?"
    )


def test_file_text_decodes_contents_api() -> None:
    encoded = base64.b64encode(b"# Widget\n").decode("ascii")
    client, _ = _client(
        {
            "https://api.test/repos/acme/widget/contents/README.md": {
                "content": encoded,
                "encoding": "base64",
            }
        }
    )
    assert client.file_text("acme", "widget", "README.md") == "# Widget\n"


def test_file_text_falls_back_to_raw_master() -> None:
    client, opener = _client({"https://raw.test/acme/widget/master/README.md": b"raw readme"})

    assert client.file_text("acme", "widget", "README.md") == "raw readme"
    assert opener.requested == [
        "https://api.test/repos/acme/widget/contents/README.md",
        "https://raw.test/acme/widget/main/README.md",
        "https://raw.test/acme/widget/master/README.md",
    ]


def test_file_text_raises_not_found_when_absent_everywhere() -> None:
    client, _ = _client({})
    with pytest.raises(NotFound):
        client.file_text("acme", "widget", "package.json")


def test_token_resolution_and_auth_scheme() -> None:
    assert resolve_token("short") is None
    assert resolve_token("your_github_token_here") is None
    assert build_github_headers("ghp_abcdefghijklmnop")["Authorization"].startswith("Bearer ")
    assert build_github_headers("0123456789abcdef")["Authorization"].startswith("token ")
    assert "Authorization" not in build_github_headers(None)
