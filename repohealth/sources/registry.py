"""Package registry clients (npm and PyPI)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import quote

from ..errors import ParseError
from ..http import RetryingHTTPClient
from .base import expect_mapping, optional_str, parse_timestamp


@dataclass(frozen=True)
class PackageRecord:
    """Latest version and per-version publish dates of one package."""

    name: str
    latest_version: str
    release_dates: Dict[str, datetime] = field(default_factory=dict)

    def published(self, version: Optional[str]) -> Optional[datetime]:
        if not version:
            return None
        return self.release_dates.get(version)


class PackageRegistry(ABC):
    """Looks up package metadata by name."""

    name: str = "registry"

    def __init__(self, http: RetryingHTTPClient, base_url: str) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")

    @abstractmethod
    def lookup(self, package: str) -> PackageRecord:
        """Return the registry record or raise a FetchError (NotFound when unknown)."""


class NpmRegistry(PackageRegistry):
    name = "npm"

    def __init__(
        self, http: RetryingHTTPClient, base_url: str = "https://registry.npmjs.org"
    ) -> None:
        super().__init__(http, base_url)

    def lookup(self, package: str) -> PackageRecord:
        # Scoped names keep their leading "@" but escape the slash.
        url = f"{self.base_url}/{quote(package, safe='@')}"
        data = expect_mapping(self.http.get_json(url), f"npm package {package}")
        tags = data.get("dist-tags")
        latest = optional_str(tags, "latest") if isinstance(tags, dict) else None
        if not latest:
            raise ParseError(f"npm package {package} has no latest dist-tag", url=url)
        times = data.get("time")
        release_dates: Dict[str, datetime] = {}
        if isinstance(times, dict):
            for version, stamp in times.items():
                if version in {"created", "modified"}:
                    continue
                parsed = parse_timestamp(stamp)
                if parsed is not None:
                    release_dates[str(version)] = parsed
        return PackageRecord(name=package, latest_version=latest, release_dates=release_dates)


class PyPIRegistry(PackageRegistry):
    name = "pypi"

    def __init__(
        self, http: RetryingHTTPClient, base_url: str = "https://pypi.org/pypi"
    ) -> None:
        super().__init__(http, base_url)

    def lookup(self, package: str) -> PackageRecord:
        url = f"{self.base_url}/{quote(package)}/json"
        data = expect_mapping(self.http.get_json(url), f"PyPI package {package}")
        info = data.get("info")
        latest = optional_str(info, "version") if isinstance(info, dict) else None
        if not latest:
            raise ParseError(f"PyPI package {package} has no version info", url=url)
        release_dates: Dict[str, datetime] = {}
        releases = data.get("releases")
        if isinstance(releases, dict):
            for version, files in releases.items():
                stamp = _earliest_upload(files)
                if stamp is not None:
                    release_dates[str(version)] = stamp
        return PackageRecord(name=package, latest_version=latest, release_dates=release_dates)


def _earliest_upload(files: Any) -> Optional[datetime]:
    if not isinstance(files, list):
        return None
    stamps = []
    for item in files:
        if not isinstance(item, dict):
            continue
        parsed = parse_timestamp(
            item.get("upload_time_iso_8601") or item.get("upload_time")
        )
        if parsed is not None:
            stamps.append(parsed)
    return min(stamps) if stamps else None


__all__ = ["NpmRegistry", "PackageRecord", "PackageRegistry", "PyPIRegistry"]
