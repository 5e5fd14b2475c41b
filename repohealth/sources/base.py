"""Parsing helpers shared by the typed source records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from ..errors import ParseError


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware datetime."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def expect_mapping(payload: Any, what: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ParseError(f"Expected an object for {what}, got {type(payload).__name__}")
    return payload


def expect_list(payload: Any, what: str) -> List[Any]:
    if not isinstance(payload, list):
        raise ParseError(f"Expected a list for {what}, got {type(payload).__name__}")
    return payload


def require_str(payload: Dict[str, Any], key: str, what: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ParseError(f"{what} payload is missing required field '{key}'")
    return value


def optional_int(payload: Dict[str, Any], key: str, default: int = 0) -> int:
    value = payload.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return default


def optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    return value if isinstance(value, str) and value else None


__all__ = [
    "expect_list",
    "expect_mapping",
    "optional_int",
    "optional_str",
    "parse_timestamp",
    "require_str",
]
