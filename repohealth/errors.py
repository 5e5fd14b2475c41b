"""Typed failures raised at the outbound HTTP boundary."""

from __future__ import annotations

from typing import Optional


class FetchError(RuntimeError):
    """Base class for failures talking to an external data source."""

    kind = "unknown"
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status: Optional[int] = None,
        retryable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
        if retryable is not None:
            self.retryable = retryable


class NotFound(FetchError):
    """The requested resource does not exist (expected for optional files)."""

    kind = "not_found"


class RateLimited(FetchError):
    """The source refused the call because the rate limit is exhausted."""

    kind = "rate_limited"


class AuthFailed(FetchError):
    """Credentials are missing, invalid, or lack access to the resource."""

    kind = "auth_failed"


class NetworkTimeout(FetchError):
    """The request did not complete within its timeout."""

    kind = "timeout"
    retryable = True


class ParseError(FetchError):
    """A payload, manifest, or document could not be decoded."""

    kind = "parse_error"


class UnknownFetchError(FetchError):
    """Any other failure, including server errors and connection resets."""

    kind = "unknown"


def error_kind(exc: BaseException | None) -> str:
    """Return the taxonomy label for an exception (``unknown`` for foreign ones)."""
    if isinstance(exc, FetchError):
        return exc.kind
    return "unknown"


__all__ = [
    "AuthFailed",
    "FetchError",
    "NetworkTimeout",
    "NotFound",
    "ParseError",
    "RateLimited",
    "UnknownFetchError",
    "error_kind",
]
