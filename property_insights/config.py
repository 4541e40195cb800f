"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``PROPERTY_INSIGHTS_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The recommendation service, profile builder and CLI commands receive
config sections from an ``AppConfig`` instance — never raw dicts or
individual env var lookups scattered through the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/property_insights.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: Optional[str] = None
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class PersonalizationConfig(BaseModel):
    """Behavior-profile retention caps and preference derivation parameters."""

    model_config = ConfigDict(frozen=True)

    max_search_history: int = 50
    max_viewed_properties: int = 100
    max_filter_sets: int = 10
    long_view_seconds: float = 30.0       # views at least this long count double
    default_price_min: float = 100_000
    default_price_max: float = 1_000_000
    price_range_similarity: float = 0.20  # both bounds differ by under 20% -> same bucket
    price_range_drift: float = 0.20       # weight of the new range when merging
    featured_categories: int = 3
    highlighted_amenities: int = 5
    suggested_searches: int = 5

    @model_validator(mode="after")
    def validate_price_defaults(self) -> "PersonalizationConfig":
        if self.default_price_min > self.default_price_max:
            raise ValueError("default_price_min must be <= default_price_max.")
        return self


class RecommendationsConfig(BaseModel):
    """List sizes and scoring parameters for the recommendation ranker."""

    model_config = ConfigDict(frozen=True)

    personalized_limit: int = 5
    new_listing_limit: int = 3
    trending_limit: int = 5
    similar_limit: int = 3
    max_reasons: int = 3
    new_listing_window_days: int = 30
    default_min_match_score: float = 0.7

    @field_validator("default_min_match_score")
    @classmethod
    def validate_min_match_score(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"default_min_match_score must be in [0.0, 1.0], got {v}.")
        return v


class MarketConfig(BaseModel):
    """Market trend synthesizer settings."""

    model_config = ConfigDict(frozen=True)

    random_seed: Optional[int] = None


class ServicesConfig(BaseModel):
    """External collaborator endpoints.  Unset URLs disable the HTTP client."""

    model_config = ConfigDict(frozen=True)

    telemetry_url: Optional[str] = None
    explanation_url: Optional[str] = None
    timeout_seconds: float = 10.0
    telemetry_queue_size: int = 1000  # events buffered for the worker thread

    @field_validator("telemetry_queue_size")
    @classmethod
    def validate_queue_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"telemetry_queue_size must be >= 1, got {v}.")
        return v


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + env vars.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    personalization: PersonalizationConfig = PersonalizationConfig()
    recommendations: RecommendationsConfig = RecommendationsConfig()
    market: MarketConfig = MarketConfig()
    services: ServicesConfig = ServicesConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply PROPERTY_INSIGHTS_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply PROPERTY_INSIGHTS_* env vars to the raw config dict.

    Supported overrides:
      PROPERTY_INSIGHTS_DB_PATH          → raw["database"]["db_path"]
      PROPERTY_INSIGHTS_LOG_LEVEL        → raw["logging"]["level"]
      PROPERTY_INSIGHTS_DEBUG            → raw["debug"]
      PROPERTY_INSIGHTS_TELEMETRY_URL    → raw["services"]["telemetry_url"]
      PROPERTY_INSIGHTS_EXPLANATION_URL  → raw["services"]["explanation_url"]
      PROPERTY_INSIGHTS_MARKET_SEED      → raw["market"]["random_seed"]
    """
    if db_path := os.environ.get("PROPERTY_INSIGHTS_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("PROPERTY_INSIGHTS_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("PROPERTY_INSIGHTS_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    if telemetry_url := os.environ.get("PROPERTY_INSIGHTS_TELEMETRY_URL"):
        raw.setdefault("services", {})["telemetry_url"] = telemetry_url

    if explanation_url := os.environ.get("PROPERTY_INSIGHTS_EXPLANATION_URL"):
        raw.setdefault("services", {})["explanation_url"] = explanation_url

    if seed := os.environ.get("PROPERTY_INSIGHTS_MARKET_SEED"):
        # validated and coerced to int by MarketConfig
        raw.setdefault("market", {})["random_seed"] = seed.strip()

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        personalization=PersonalizationConfig(**raw.get("personalization", {})),
        recommendations=RecommendationsConfig(**raw.get("recommendations", {})),
        market=MarketConfig(**raw.get("market", {})),
        services=ServicesConfig(**raw.get("services", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
