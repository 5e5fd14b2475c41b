"""Typed clients for the external data sources."""

from .github import GitHubClient, RepositoryRecord, TreeEntry, build_github_headers
from .registry import NpmRegistry, PackageRecord, PackageRegistry, PyPIRegistry

__all__ = [
    "GitHubClient",
    "NpmRegistry",
    "PackageRecord",
    "PackageRegistry",
    "PyPIRegistry",
    "RepositoryRecord",
    "TreeEntry",
    "build_github_headers",
]
