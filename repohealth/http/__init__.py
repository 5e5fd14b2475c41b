"""Outbound HTTP access with retry and backoff."""

from .client import HTTPResponse, RetryingHTTPClient

__all__ = ["HTTPResponse", "RetryingHTTPClient"]
