"""Tests for collector discovery utilities."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from repohealth.collectors import (
    CodeQualityCollector,
    Collector,
    DependencyCollector,
    DocumentationCollector,
    MetadataCollector,
    discover_collectors,
)
from repohealth.models import SignalResult
from tests._fixtures.fakes import FakeGitHub, make_context


class LicenseCollector(Collector):
    """Plugin collector used for entry-point discovery."""

    name = "license"

    def _collect(self, request):  # pragma: no cover - unused
        return SignalResult.collected(self.name, score=100, confidence=1.0)


class _EntryPoints(list):
    def select(self, **kwargs):
        if kwargs.get("group") == "repohealth.collectors":
            return self
        return []


def _no_plugins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "repohealth.collectors.importlib_metadata.entry_points", lambda: _EntryPoints()
    )


def test_builtin_collectors_in_signal_order(monkeypatch: pytest.MonkeyPatch) -> None:
    _no_plugins(monkeypatch)
    collectors = discover_collectors(make_context(FakeGitHub()))
    assert [type(collector) for collector in collectors] == [
        MetadataCollector,
        DocumentationCollector,
        DependencyCollector,
        CodeQualityCollector,
    ]


def test_enabled_filter(monkeypatch: pytest.MonkeyPatch) -> None:
    _no_plugins(monkeypatch)
    collectors = discover_collectors(make_context(FakeGitHub()), ["Documentation"])
    assert len(collectors) == 1
    assert isinstance(collectors[0], DocumentationCollector)


def test_entry_point_collectors_are_loaded(monkeypatch: pytest.MonkeyPatch) -> None:
    entry = SimpleNamespace(name="license", load=lambda: LicenseCollector)
    monkeypatch.setattr(
        "repohealth.collectors.importlib_metadata.entry_points", lambda: _EntryPoints([entry])
    )
    context = make_context(FakeGitHub())

    collectors = discover_collectors(context, ["license"])

    assert len(collectors) == 1
    assert isinstance(collectors[0], LicenseCollector)
    assert collectors[0].context is context


def test_entry_point_must_produce_a_collector(monkeypatch: pytest.MonkeyPatch) -> None:
    entry = SimpleNamespace(name="bogus", load=lambda: object())
    monkeypatch.setattr(
        "repohealth.collectors.importlib_metadata.entry_points", lambda: _EntryPoints([entry])
    )
    with pytest.raises(TypeError):
        discover_collectors(make_context(FakeGitHub()), ["bogus"])


def test_unknown_collector_names_raise(monkeypatch: pytest.MonkeyPatch) -> None:
    _no_plugins(monkeypatch)
    with pytest.raises(ValueError):
        discover_collectors(make_context(FakeGitHub()), ["does-not-exist"])
