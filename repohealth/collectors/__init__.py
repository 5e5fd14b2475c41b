"""Signal collector implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata as importlib_metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import Collector, CollectorContext
from .code_quality import CodeQualityCollector
from .dependencies import DependencyCollector
from .documentation import DocumentationCollector
from .metadata import MetadataCollector

_ENTRY_POINT_GROUP = "repohealth.collectors"

_BUILTIN_FACTORIES: dict[str, Callable[[CollectorContext], Collector]] = {
    "metadata": MetadataCollector,
    "documentation": DocumentationCollector,
    "dependencies": DependencyCollector,
    "code_quality": CodeQualityCollector,
}


def discover_collectors(
    context: CollectorContext, enabled: Sequence[str] | None = None
) -> List[Collector]:
    """Return instantiated collectors, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    collectors: List[Collector] = []
    seen: Set[str] = set()

    def _add(name: str, factory: Callable[[CollectorContext], Collector]) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory(context)
        if not isinstance(instance, Collector):
            raise TypeError(f"Collector factory for '{name}' did not return a Collector instance")
        if not instance.name:
            instance.name = key
        collectors.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in _BUILTIN_FACTORIES.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        name = entry.name
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - defensive guard
            raise RuntimeError(f"Failed to load collector entry point '{name}': {exc}") from exc

        def _factory(ctx: CollectorContext, obj: object = loaded) -> Collector:
            return _coerce_collector(obj, ctx)

        _add(name, _factory)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown collectors requested: {missing}")

    return collectors


def _coerce_collector(obj: object, context: CollectorContext) -> Collector:
    if isinstance(obj, Collector):
        return obj
    if isinstance(obj, type) and issubclass(obj, Collector):
        return obj(context)
    if callable(obj):
        instance = obj(context)
        if isinstance(instance, Collector):
            return instance
    raise TypeError("Collector entry point must be a Collector subclass or factory")


def _iter_entry_points() -> Iterable[importlib_metadata.EntryPoint]:
    try:
        entry_points = importlib_metadata.entry_points()
    except Exception:  # pragma: no cover - defensive guard
        return []
    return entry_points.select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "CodeQualityCollector",
    "Collector",
    "CollectorContext",
    "DependencyCollector",
    "DocumentationCollector",
    "MetadataCollector",
    "discover_collectors",
]
