"""Retrying HTTP client used by every signal collector."""

from __future__ import annotations

import json
import random
import socket
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from ..errors import (
    AuthFailed,
    FetchError,
    NetworkTimeout,
    NotFound,
    ParseError,
    RateLimited,
    UnknownFetchError,
)
from ..logging import get_logger


@dataclass
class HTTPResponse:
    """Body and metadata of a successful response."""

    url: str
    status: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        try:
            return json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ParseError(f"Invalid JSON payload from {self.url}", url=self.url) from exc


class RetryingHTTPClient:
    """Issues GET requests with a timeout, bounded retries, and jittered backoff."""

    DEFAULT_TIMEOUT = 15.0
    DEFAULT_MAX_RETRIES = 2

    def __init__(
        self,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = 0.5,
        backoff_cap: float = 8.0,
        opener: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] | None = None,
        jitter: Callable[[], float] | None = None,
    ) -> None:
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self._opener = opener
        self._sleep = sleep or time.sleep
        self._jitter = jitter or random.random
        self.logger = get_logger("http")

    def fetch(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> HTTPResponse:
        """Return the response for ``url`` or raise a typed :class:`FetchError`."""
        target = _with_params(url, params)
        merged_headers = {**self.headers, **(headers or {})}
        effective_timeout = timeout or self.timeout

        attempt = 0
        while True:
            try:
                return self._attempt(target, merged_headers, effective_timeout)
            except FetchError as exc:
                if not exc.retryable or attempt >= self.max_retries:
                    raise
                delay = self._backoff_delay(attempt)
                attempt += 1
                self.logger.debug(
                    "Retrying %s after %s (attempt %d/%d, sleeping %.2fs)",
                    target,
                    exc.kind,
                    attempt,
                    self.max_retries,
                    delay,
                )
                self._sleep(delay)

    def get_json(self, url: str, **kwargs: Any) -> Any:
        return self.fetch(url, **kwargs).json()

    def get_text(self, url: str, **kwargs: Any) -> str:
        return self.fetch(url, **kwargs).text()

    def _backoff_delay(self, attempt: int) -> float:
        exponential = min(self.backoff_cap, self.backoff_base * (2 ** attempt))
        return exponential + self._jitter() * self.backoff_base

    def _attempt(self, url: str, headers: Dict[str, str], timeout: float) -> HTTPResponse:
        request = Request(url, headers=headers, method="GET")
        opener = self._opener or urlopen
        self.logger.debug("GET %s", url)
        try:
            with opener(request, timeout=timeout) as response:
                body = response.read()
                status = getattr(response, "status", None) or 200
                response_headers = _normalise_headers(getattr(response, "headers", None))
        except HTTPError as exc:
            raise _classify_http_error(url, exc) from exc
        except URLError as exc:
            reason = exc.reason
            if isinstance(reason, (socket.timeout, TimeoutError)):
                raise NetworkTimeout(f"Request to {url} timed out", url=url) from exc
            raise UnknownFetchError(
                f"Request to {url} failed: {reason}", url=url, retryable=True
            ) from exc
        except (socket.timeout, TimeoutError) as exc:
            raise NetworkTimeout(f"Request to {url} timed out", url=url) from exc
        except (ConnectionError, OSError) as exc:
            raise UnknownFetchError(
                f"Connection to {url} failed: {exc}", url=url, retryable=True
            ) from exc
        return HTTPResponse(url=url, status=status, body=body, headers=response_headers)


def _classify_http_error(url: str, exc: HTTPError) -> FetchError:
    status = exc.code
    headers = _normalise_headers(exc.headers)
    detail = _error_detail(exc)
    if status in (404, 410):
        return NotFound(f"{url} was not found", url=url, status=status)
    if status == 401:
        return AuthFailed(f"Authentication failed for {url}", url=url, status=status)
    if status == 429 or (status == 403 and headers.get("x-ratelimit-remaining") == "0"):
        return RateLimited(f"Rate limit exceeded for {url}", url=url, status=status)
    if status == 403:
        return AuthFailed(
            f"Access to {url} is forbidden{detail}", url=url, status=status
        )
    if status >= 500:
        return UnknownFetchError(
            f"{url} returned server error {status}{detail}",
            url=url,
            status=status,
            retryable=True,
        )
    return UnknownFetchError(
        f"{url} returned status {status}{detail}", url=url, status=status
    )


def _error_detail(exc: HTTPError) -> str:
    try:
        raw = exc.read() if exc.fp is not None else b""
    except OSError:  # pragma: no cover - defensive guard
        raw = b""
    text = raw.decode("utf-8", errors="ignore").strip() if raw else ""
    if not text:
        return ""
    return f": {' '.join(text.split())[:200]}"


def _normalise_headers(headers: Any) -> Dict[str, str]:
    if headers is None:
        return {}
    items = headers.items() if hasattr(headers, "items") else headers
    return {str(key).lower(): str(value) for key, value in items}


def _with_params(url: str, params: Mapping[str, Any] | None) -> str:
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


__all__ = ["HTTPResponse", "RetryingHTTPClient"]
