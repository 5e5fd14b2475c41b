from __future__ import annotations

import logging

import pytest

from repohealth.models import AssessmentRequest


@pytest.fixture
def assessment_request() -> AssessmentRequest:
    """The repository most collector tests assess."""
    return AssessmentRequest(owner="acme", repo="widget")


@pytest.fixture(autouse=True)
def _reset_repohealth_logger():
    """Drop handlers the CLI installs so they never outlive a captured stream."""
    logger = logging.getLogger("repohealth")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
