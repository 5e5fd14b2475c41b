"""Tests for repohealth.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from repohealth.config import (
    DEFAULT_WEIGHTS,
    AssessmentConfig,
    CollectorSettings,
    ConfigError,
    HTTPSettings,
    load_config,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path, env={})

    assert isinstance(config, AssessmentConfig)
    assert config.github_token is None
    assert dict(config.weights) == dict(DEFAULT_WEIGHTS)
    assert config.http == HTTPSettings()
    assert config.collectors == CollectorSettings()
    assert config.risk.critical == 730


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".repohealth.yml"
    config_file.write_text(
        """
github_token: "file-token"
weights:
  metadata: 0.25
  documentation: 0.25
  dependencies: 0.25
  code_quality: 0.25
http:
  timeout: 5
  max_retries: 4
  user_agent: "acme-audit/2.0"
collectors:
  timeout: 12.5
  batch_size: 3
  max_files: 10
risk_thresholds:
  low: 30
  medium: 60
  high: 120
  critical: 240
sources:
  api_base_url: "https://github.example.com/api/v3/"
recommendations:
  limit: 5
""",
        encoding="utf-8",
    )

    config = load_config(tmp_path, env={})

    assert config.github_token == "file-token"
    assert config.weights["code_quality"] == 0.25
    assert config.http.timeout == 5.0
    assert config.http.max_retries == 4
    assert config.http.user_agent == "acme-audit/2.0"
    assert config.collectors.timeout == 12.5
    assert config.collectors.batch_size == 3
    assert config.collectors.max_files == 10
    assert config.collectors.max_dependencies == CollectorSettings.max_dependencies
    assert (config.risk.low, config.risk.critical) == (30, 240)
    assert config.sources.api_base_url == "https://github.example.com/api/v3"
    assert config.recommendations.limit == 5
    assert config.recommendations.per_signal == 3


def test_environment_overrides_file(tmp_path: Path) -> None:
    config_file = tmp_path / "custom.yml"
    config_file.write_text("github_token: file-token\nhttp:\n  timeout: 9\n", encoding="utf-8")

    config = load_config(
        config_file,
        env={
            "GITHUB_TOKEN": " env-token ",
            "REPOHEALTH_HTTP_TIMEOUT": "3",
            "REPOHEALTH_COLLECTOR_TIMEOUT": "7",
            "REPOHEALTH_WEIGHTS": "metadata=0.5, documentation=0.5",
        },
    )

    assert config.github_token == "env-token"
    assert config.http.timeout == 3.0
    assert config.collectors.timeout == 7.0
    assert dict(config.weights) == {"metadata": 0.5, "documentation": 0.5}


def test_dedicated_token_variable_wins(tmp_path: Path) -> None:
    config = load_config(
        tmp_path, env={"REPOHEALTH_GITHUB_TOKEN": "primary", "GITHUB_TOKEN": "secondary"}
    )
    assert config.github_token == "primary"


@pytest.mark.parametrize(
    "content",
    [
        "weights:\n  metadata: 0.9\n",
        "weights:\n  stars: 1.0\n",
        "weights: [0.5, 0.5]\n",
        "- just\n- a list\n",
        "risk_thresholds:\n  low: 400\n",
        "collectors:\n  timeout: 0\n",
        "http: [unclosed\n",
    ],
)
def test_invalid_configuration_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / ".repohealth.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path, env={})


def test_malformed_weight_env_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path, env={"REPOHEALTH_WEIGHTS": "metadata"})


def test_config_is_read_only() -> None:
    config = AssessmentConfig()
    with pytest.raises(TypeError):
        config.weights["metadata"] = 1.0  # type: ignore[index]
    with pytest.raises(ConfigError):
        AssessmentConfig(weights={"metadata": 0.3})
