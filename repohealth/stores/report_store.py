"""Persistent history of assessment reports."""

from __future__ import annotations

from datetime import UTC, datetime
import json
from pathlib import Path
from typing import Dict, List, Optional

from ..models import AssessmentReport
from ..report import report_from_dict, report_to_dict

_STORE_VERSION = 1
DEFAULT_HISTORY_LIMIT = 20


class ReportStore:
    """Stores serialised reports keyed by ``owner/repo``, newest last."""

    def __init__(self, path: Path | None, *, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._path = path
        self._history_limit = max(1, history_limit)
        self._entries: Dict[str, List[Dict[str, object]]] = {}
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    def save(self, report: AssessmentReport) -> None:
        key = _key(report.request.owner, report.request.repo)
        history = self._entries.setdefault(key, [])
        history.append(
            {
                "stored_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
                "report": report_to_dict(report),
            }
        )
        del history[: -self._history_limit]
        self._dirty = True

    def latest(self, owner: str, repo: str) -> Optional[AssessmentReport]:
        reports = self.history(owner, repo)
        return reports[-1] if reports else None

    def history(self, owner: str, repo: str) -> List[AssessmentReport]:
        reports: List[AssessmentReport] = []
        for entry in self._entries.get(_key(owner, repo), []):
            payload = entry.get("report")
            if not isinstance(payload, dict):
                continue
            try:
                reports.append(report_from_dict(payload))
            except ValueError:
                continue
        return reports

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {
            "version": _STORE_VERSION,
            "entries": self._entries,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8"
        )
        self._dirty = False

    def clear(self) -> None:
        self._entries.clear()
        self._dirty = True

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            # Missing or unreadable history starts empty.
            return
        if not isinstance(data, dict) or data.get("version") != _STORE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        valid_entries: Dict[str, List[Dict[str, object]]] = {}
        for key, raw in entries.items():
            if not isinstance(key, str) or not isinstance(raw, list):
                continue
            valid_entries[key] = [item for item in raw if isinstance(item, dict) and "report" in item]
        self._entries = valid_entries
        self._dirty = False


def _key(owner: str, repo: str) -> str:
    return f"{owner}/{repo}".lower()


__all__ = ["ReportStore"]
