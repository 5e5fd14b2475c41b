"""Tests for the documentation collector."""

from __future__ import annotations

import textwrap

from repohealth.collectors.documentation import (
    DocumentationCollector,
    badge_score,
    quality_score,
    section_score,
)
from repohealth.errors import AuthFailed
from repohealth.models import DOCUMENTATION, Priority
from tests._fixtures.fakes import FakeGitHub, make_context

RICH_README = textwrap.dedent(
    """
    # Widget

    [![Build Status](https://ci.example/badge.svg)](https://ci.example)
    [![Coverage](https://codecov.io/badge.svg)](https://codecov.io)
    [![npm version](https://badge.fury.io/js/widget.svg)](https://npmjs.com/widget)
    [![License: MIT](https://img.shields.io/badge/License-MIT-yellow.svg)](LICENSE)

    Widget is a small library that turns configuration files into validated runtime objects for services.

    ## Installation

    ```bash
    npm install widget
    ```

    ## Usage

    ```js
    const widget = require("widget");
    widget.load("config.yml");
    ```

    ![Architecture](docs/architecture.png)

    ## API

    | Method | Description |
    | ------ | ----------- |
    | load   | Reads a file |

    See the [guide](docs/guide.md) and [reference](docs/reference.md).

    ## Contributing

    Please read [CONTRIBUTING.md](CONTRIBUTING.md).

    ## Changelog

    See [CHANGELOG.md](CHANGELOG.md).

    ## License

    MIT
    """
).lstrip()


def test_section_detection_reports_found_and_missing() -> None:
    score, found, missing = section_score(RICH_README)
    assert {"title", "description", "installation", "usage", "api", "license"} <= set(found)
    assert missing == ["acknowledgments"]
    assert 90 <= score < 100


def test_badges_are_normalised_to_100() -> None:
    score, names = badge_score(RICH_README)
    assert set(names) == {"build", "coverage", "version", "license"}
    assert round(score, 2) == round(4 / 6 * 100, 2)
    assert badge_score("no badges here") == (0.0, [])


def test_quality_counts_structure() -> None:
    _, details = quality_score(RICH_README)
    assert details["code_blocks"] == 2
    assert details["images"] >= 1
    assert details["tables"] == 1
    assert details["links"] >= 3


def test_rich_readme_scores_well(assessment_request) -> None:
    github = FakeGitHub(files={"README.md": RICH_README})

    result = DocumentationCollector(make_context(github)).collect(assessment_request)

    assert result.signal_name == DOCUMENTATION
    assert result.succeeded is True
    assert result.confidence == 0.9
    assert result.score >= 70
    assert result.metrics["filename"] == "README.md"
    assert not any(rec.priority is Priority.CRITICAL for rec in result.recommendations)


def test_readme_candidates_are_probed_in_order(assessment_request) -> None:
    github = FakeGitHub(files={"README.rst": "Widget\n======\n\nA tool."})

    result = DocumentationCollector(make_context(github)).collect(assessment_request)

    assert result.succeeded is True
    assert result.metrics["filename"] == "README.rst"
    assert github.file_requests[:3] == ["README.md", "readme.md", "README.rst"]


def test_sparse_readme_gets_critical_and_length_recommendations(assessment_request) -> None:
    github = FakeGitHub(files={"README.md": "# widget\n"})

    result = DocumentationCollector(make_context(github)).collect(assessment_request)

    priorities = [rec.priority for rec in result.recommendations]
    messages = [rec.message for rec in result.recommendations]
    assert Priority.CRITICAL in priorities
    assert "README is too short" in messages
    assert result.score < 40


def test_missing_readme_is_a_failed_zero_score(assessment_request) -> None:
    result = DocumentationCollector(make_context(FakeGitHub())).collect(assessment_request)

    assert result.succeeded is False
    assert result.score == 0
    assert result.confidence == 0.3
    assert result.estimated is False
    assert result.recommendations[0].priority is Priority.CRITICAL
    assert result.recommendations[0].message == "Create project documentation"


def test_access_errors_use_the_estimator(assessment_request) -> None:
    github = FakeGitHub(errors={"README.md": AuthFailed("bad credentials")})

    result = DocumentationCollector(make_context(github)).collect(assessment_request)

    assert result.succeeded is False
    assert result.estimated is True
    assert result.score == 40
