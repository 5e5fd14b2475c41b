"""Pluggable source-metric extraction strategies."""

from .extractor import (
    FileMetrics,
    FunctionMetrics,
    MetricExtractor,
    RegexMetricExtractor,
    SmellMatch,
    language_for_path,
)

__all__ = [
    "FileMetrics",
    "FunctionMetrics",
    "MetricExtractor",
    "RegexMetricExtractor",
    "SmellMatch",
    "language_for_path",
]
