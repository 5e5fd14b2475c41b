"""Persistence helpers for assessment reports."""

from .report_store import ReportStore

__all__ = ["ReportStore"]
