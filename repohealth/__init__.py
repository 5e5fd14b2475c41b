"""repohealth: repository health assessment from public source-hosting data."""

from .models import (
    AssessmentReport,
    AssessmentRequest,
    ConfidenceLabel,
    Priority,
    Recommendation,
    ScoreBreakdown,
    SignalResult,
)
from .orchestrator import Orchestrator, assess_repository

__version__ = "0.1.0"

__all__ = [
    "AssessmentReport",
    "AssessmentRequest",
    "ConfidenceLabel",
    "Orchestrator",
    "Priority",
    "Recommendation",
    "ScoreBreakdown",
    "SignalResult",
    "assess_repository",
]
