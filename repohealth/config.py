"""Configuration loading for repohealth (.repohealth.yml plus environment)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from .models import SIGNAL_NAMES

CONFIG_FILENAME = ".repohealth.yml"
WEIGHT_TOLERANCE = 0.01

DEFAULT_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "metadata": 0.2,
        "documentation": 0.25,
        "dependencies": 0.25,
        "code_quality": 0.3,
    }
)

ENV_TOKEN_KEYS = ("REPOHEALTH_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")


class ConfigError(RuntimeError):
    """Raised when configuration cannot be parsed or fails validation."""


@dataclass(frozen=True)
class HTTPSettings:
    """Outbound request behaviour shared by every collector."""

    timeout: float = 15.0
    max_retries: int = 2
    backoff_base: float = 0.5
    backoff_cap: float = 8.0
    user_agent: str = "repohealth/1.0"


@dataclass(frozen=True)
class CollectorSettings:
    """Deadlines, batching, and caps for signal collection."""

    timeout: float = 30.0
    batch_size: int = 5
    batch_delay: float = 0.2
    max_dependencies: int = 50
    max_files: int = 20
    max_file_size: int = 100_000


@dataclass(frozen=True)
class RiskThresholds:
    """Days of publish-date divergence at which dependency risk escalates."""

    low: int = 90
    medium: int = 180
    high: int = 365
    critical: int = 730


@dataclass(frozen=True)
class SourceSettings:
    """Base URLs for the external data sources."""

    api_base_url: str = "https://api.github.com"
    raw_base_url: str = "https://raw.githubusercontent.com"
    npm_registry_url: str = "https://registry.npmjs.org"
    pypi_url: str = "https://pypi.org/pypi"


@dataclass(frozen=True)
class RecommendationSettings:
    """Caps applied by the recommendation generator."""

    per_signal: int = 3
    limit: int = 8


@dataclass(frozen=True)
class AssessmentConfig:
    """Process-wide, read-only settings passed explicitly to every component."""

    github_token: Optional[str] = None
    weights: Mapping[str, float] = field(default_factory=lambda: DEFAULT_WEIGHTS)
    http: HTTPSettings = field(default_factory=HTTPSettings)
    collectors: CollectorSettings = field(default_factory=CollectorSettings)
    risk: RiskThresholds = field(default_factory=RiskThresholds)
    sources: SourceSettings = field(default_factory=SourceSettings)
    recommendations: RecommendationSettings = field(
        default_factory=RecommendationSettings
    )

    def __post_init__(self) -> None:
        validate_weights(self.weights)
        if not isinstance(self.weights, MappingProxyType):
            object.__setattr__(
                self, "weights", MappingProxyType(dict(self.weights))
            )


def validate_weights(weights: Mapping[str, float]) -> None:
    """Ensure weights name known signals, are non-negative, and sum to ~1.0."""
    if not weights:
        raise ConfigError("At least one signal weight must be configured")
    unknown = sorted(set(weights) - set(SIGNAL_NAMES))
    if unknown:
        raise ConfigError(f"Unknown signals in weights: {', '.join(unknown)}")
    for name, value in weights.items():
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ConfigError(f"Weight for '{name}' must be a number")
        if value < 0:
            raise ConfigError(f"Weight for '{name}' must not be negative")
    total = sum(float(value) for value in weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ConfigError(f"Signal weights must sum to 1.0 (got {total:.3f})")


def load_config(
    config_path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> AssessmentConfig:
    """Load configuration from disk and apply environment overrides."""
    environ = os.environ if env is None else env
    data: Dict[str, Any] = {}
    if config_path is not None:
        config_file = _resolve_config_path(config_path)
        if config_file.exists():
            data = _read_config(config_file)

    http_data = _as_dict(data.get("http"))
    http = HTTPSettings(
        timeout=_pick(_as_float(http_data.get("timeout")), HTTPSettings.timeout),
        max_retries=_pick(_as_int(http_data.get("max_retries")), HTTPSettings.max_retries),
        backoff_base=_pick(
            _as_float(http_data.get("backoff_base")), HTTPSettings.backoff_base
        ),
        backoff_cap=_pick(_as_float(http_data.get("backoff_cap")), HTTPSettings.backoff_cap),
        user_agent=_pick(_as_str(http_data.get("user_agent")), HTTPSettings.user_agent),
    )

    collector_data = _as_dict(data.get("collectors"))
    collectors = CollectorSettings(
        timeout=_pick(_as_float(collector_data.get("timeout")), CollectorSettings.timeout),
        batch_size=_pick(
            _as_int(collector_data.get("batch_size")), CollectorSettings.batch_size
        ),
        batch_delay=_pick(
            _as_float(collector_data.get("batch_delay")), CollectorSettings.batch_delay
        ),
        max_dependencies=_pick(
            _as_int(collector_data.get("max_dependencies")),
            CollectorSettings.max_dependencies,
        ),
        max_files=_pick(_as_int(collector_data.get("max_files")), CollectorSettings.max_files),
        max_file_size=_pick(
            _as_int(collector_data.get("max_file_size")), CollectorSettings.max_file_size
        ),
    )

    risk_data = _as_dict(data.get("risk_thresholds"))
    risk = RiskThresholds(
        low=_pick(_as_int(risk_data.get("low")), RiskThresholds.low),
        medium=_pick(_as_int(risk_data.get("medium")), RiskThresholds.medium),
        high=_pick(_as_int(risk_data.get("high")), RiskThresholds.high),
        critical=_pick(_as_int(risk_data.get("critical")), RiskThresholds.critical),
    )
    if not risk.low < risk.medium < risk.high < risk.critical:
        raise ConfigError("risk_thresholds must be strictly increasing")

    source_data = _as_dict(data.get("sources"))
    sources = SourceSettings(
        api_base_url=_pick(
            _as_str(source_data.get("api_base_url")), SourceSettings.api_base_url
        ).rstrip("/"),
        raw_base_url=_pick(
            _as_str(source_data.get("raw_base_url")), SourceSettings.raw_base_url
        ).rstrip("/"),
        npm_registry_url=_pick(
            _as_str(source_data.get("npm_registry_url")), SourceSettings.npm_registry_url
        ).rstrip("/"),
        pypi_url=_pick(_as_str(source_data.get("pypi_url")), SourceSettings.pypi_url).rstrip("/"),
    )

    rec_data = _as_dict(data.get("recommendations"))
    recommendations = RecommendationSettings(
        per_signal=_pick(_as_int(rec_data.get("per_signal")), RecommendationSettings.per_signal),
        limit=_pick(_as_int(rec_data.get("limit")), RecommendationSettings.limit),
    )

    weights: Dict[str, float] = dict(DEFAULT_WEIGHTS)
    weight_data = data.get("weights")
    if weight_data is not None:
        if not isinstance(weight_data, dict):
            raise ConfigError("weights must be a mapping of signal name to weight")
        weights = _parse_weight_mapping(weight_data)

    token = _as_str(data.get("github_token"))

    # Environment wins over the file.
    env_token = _first_env_value(environ, ENV_TOKEN_KEYS)
    if env_token:
        token = env_token
    env_timeout = _as_float(environ.get("REPOHEALTH_HTTP_TIMEOUT"))
    if env_timeout is not None:
        http = replace(http, timeout=env_timeout)
    env_retries = _as_int(environ.get("REPOHEALTH_MAX_RETRIES"))
    if env_retries is not None:
        http = replace(http, max_retries=env_retries)
    env_collector_timeout = _as_float(environ.get("REPOHEALTH_COLLECTOR_TIMEOUT"))
    if env_collector_timeout is not None:
        collectors = replace(collectors, timeout=env_collector_timeout)
    env_weights = environ.get("REPOHEALTH_WEIGHTS")
    if env_weights:
        weights = _parse_weight_string(env_weights)

    if http.timeout <= 0 or collectors.timeout <= 0:
        raise ConfigError("Timeouts must be positive")
    if http.max_retries < 0:
        raise ConfigError("max_retries must not be negative")
    if collectors.batch_size < 1:
        raise ConfigError("batch_size must be at least 1")

    return AssessmentConfig(
        github_token=token or None,
        weights=MappingProxyType(weights),
        http=http,
        collectors=collectors,
        risk=risk,
        sources=sources,
        recommendations=recommendations,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _parse_weight_mapping(raw: Dict[str, Any]) -> Dict[str, float]:
    weights: Dict[str, float] = {}
    for key, value in raw.items():
        number = _as_float(value)
        if number is None:
            raise ConfigError(f"Weight for '{key}' must be a number")
        weights[str(key)] = number
    validate_weights(weights)
    return weights


def _parse_weight_string(raw: str) -> Dict[str, float]:
    weights: Dict[str, float] = {}
    for part in raw.split(","):
        if not part.strip():
            continue
        if "=" not in part:
            raise ConfigError(f"Invalid REPOHEALTH_WEIGHTS entry: {part.strip()!r}")
        key, value = part.split("=", 1)
        number = _as_float(value.strip())
        if number is None:
            raise ConfigError(f"Weight for '{key.strip()}' must be a number")
        weights[key.strip()] = number
    validate_weights(weights)
    return weights


def _first_env_value(environ: Mapping[str, str], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = environ.get(key)
        if value and value.strip():
            return value.strip()
    return None


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


__all__ = [
    "AssessmentConfig",
    "CollectorSettings",
    "ConfigError",
    "DEFAULT_WEIGHTS",
    "HTTPSettings",
    "RecommendationSettings",
    "RiskThresholds",
    "SourceSettings",
    "load_config",
    "validate_weights",
]
