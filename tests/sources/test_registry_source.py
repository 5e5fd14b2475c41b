"""Tests for the npm and PyPI registry clients."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from repohealth.errors import ParseError
from repohealth.http import RetryingHTTPClient
from repohealth.sources import NpmRegistry, PyPIRegistry


class FakeResponse:
    def __init__(self, payload):
        self._body = json.dumps(payload).encode("utf-8")
        self.status = 200
        self.headers = {}

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _http(payload, seen: list[str]) -> RetryingHTTPClient:
    def opener(request, timeout=None):
        seen.append(request.full_url)
        return FakeResponse(payload)

    return RetryingHTTPClient(opener=opener)


def test_npm_lookup_reads_latest_and_publish_times() -> None:
    seen: list[str] = []
    registry = NpmRegistry(
        _http(
            {
                "dist-tags": {"latest": "2.0.0"},
                "time": {
                    "created": "2019-01-01T00:00:00Z",
                    "modified": "2024-01-01T00:00:00Z",
                    "1.0.0": "2020-01-01T00:00:00.000Z",
                    "2.0.0": "2022-03-01T00:00:00.000Z",
                },
            },
            seen,
        ),
        "https://registry.test",
    )

    record = registry.lookup("@scope/pkg")

    assert seen == ["https://registry.test/@scope%2Fpkg"]
    assert record.latest_version == "2.0.0"
    assert set(record.release_dates) == {"1.0.0", "2.0.0"}
    assert record.published("1.0.0") == datetime(2020, 1, 1, tzinfo=UTC)


def test_npm_lookup_without_latest_tag_is_parse_error() -> None:
    registry = NpmRegistry(_http({"name": "pkg"}, []), "https://registry.test")
    with pytest.raises(ParseError):
        registry.lookup("pkg")


def test_pypi_lookup_uses_earliest_upload_per_release() -> None:
    seen: list[str] = []
    registry = PyPIRegistry(
        _http(
            {
                "info": {"version": "3.1"},
                "releases": {
                    "3.0": [
                        {"upload_time_iso_8601": "2023-02-01T10:00:00Z"},
                        {"upload_time_iso_8601": "2023-01-15T10:00:00Z"},
                    ],
                    "3.1": [{"upload_time": "2024-01-01T00:00:00"}],
                    "0.1": [],
                },
            },
            seen,
        ),
        "https://pypi.test/pypi",
    )

    record = registry.lookup("requests")

    assert seen == ["https://pypi.test/pypi/requests/json"]
    assert record.latest_version == "3.1"
    assert record.published("3.0") == datetime(2023, 1, 15, 10, tzinfo=UTC)
    assert record.published("3.1") == datetime(2024, 1, 1, tzinfo=UTC)
    assert record.published("0.1") is None
