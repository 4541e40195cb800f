"""
Tests for property_insights/config.py.

What we test
------------
load_config():
  - The committed config/default.toml loads and matches the model defaults.
  - An explicit TOML file is honoured; missing sections use defaults.
  - A sibling local.toml is deep-merged over the main file.
  - PROPERTY_INSIGHTS_* environment variables override TOML values.
  - Missing file -> FileNotFoundError; invalid values -> ValidationError.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from property_insights.config import AppConfig, _deep_merge, load_config

_ENV_VARS = (
    "PROPERTY_INSIGHTS_DB_PATH",
    "PROPERTY_INSIGHTS_LOG_LEVEL",
    "PROPERTY_INSIGHTS_DEBUG",
    "PROPERTY_INSIGHTS_TELEMETRY_URL",
    "PROPERTY_INSIGHTS_EXPLANATION_URL",
    "PROPERTY_INSIGHTS_MARKET_SEED",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_default_toml_matches_model_defaults(self):
        config = load_config()
        defaults = AppConfig()
        assert config.personalization == defaults.personalization
        assert config.recommendations == defaults.recommendations
        assert config.services == defaults.services
        assert config.debug is False

    def test_explicit_file(self, tmp_path):
        path = _write(tmp_path / "app.toml", """
[logging]
level = "debug"

[recommendations]
personalized_limit = 8
default_min_match_score = 0.5
""")
        config = load_config(path)
        assert config.logging.level == "DEBUG"
        assert config.recommendations.personalized_limit == 8
        assert config.recommendations.default_min_match_score == pytest.approx(0.5)
        assert config.recommendations.trending_limit == 5
        assert config.database.db_path == "data/db/property_insights.db"

    def test_local_toml_merged(self, tmp_path):
        path = _write(tmp_path / "app.toml", """
[personalization]
max_search_history = 20
long_view_seconds = 45.0
""")
        _write(tmp_path / "local.toml", """
[personalization]
max_search_history = 7
""")
        config = load_config(path)
        assert config.personalization.max_search_history == 7
        assert config.personalization.long_view_seconds == pytest.approx(45.0)

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "app.toml", """
[database]
db_path = "from_toml.db"

[logging]
level = "INFO"
""")
        monkeypatch.setenv("PROPERTY_INSIGHTS_DB_PATH", "from_env.db")
        monkeypatch.setenv("PROPERTY_INSIGHTS_LOG_LEVEL", "warning")
        monkeypatch.setenv("PROPERTY_INSIGHTS_DEBUG", "true")
        monkeypatch.setenv("PROPERTY_INSIGHTS_TELEMETRY_URL", "http://telemetry.local")
        monkeypatch.setenv("PROPERTY_INSIGHTS_EXPLANATION_URL", "http://explain.local")
        monkeypatch.setenv("PROPERTY_INSIGHTS_MARKET_SEED", "7")

        config = load_config(path)
        assert config.database.db_path == "from_env.db"
        assert config.logging.level == "WARNING"
        assert config.debug is True
        assert config.services.telemetry_url == "http://telemetry.local"
        assert config.services.explanation_url == "http://explain.local"
        assert config.market.random_seed == 7

    def test_project_debug_flag(self, tmp_path):
        path = _write(tmp_path / "app.toml", "[project]\ndebug = true\n")
        assert load_config(path).debug is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    @pytest.mark.parametrize("body", [
        '[logging]\nlevel = "LOUD"\n',
        "[recommendations]\ndefault_min_match_score = 1.5\n",
        "[personalization]\ndefault_price_min = 900.0\ndefault_price_max = 100.0\n",
        "[services]\ntelemetry_queue_size = 0\n",
    ])
    def test_invalid_values(self, tmp_path, body):
        path = _write(tmp_path / "app.toml", body)
        with pytest.raises(ValidationError):
            load_config(path)

    @pytest.mark.parametrize("seed", ["abc", "4.5"])
    def test_invalid_seed_env(self, tmp_path, monkeypatch, seed):
        path = _write(tmp_path / "app.toml", "")
        monkeypatch.setenv("PROPERTY_INSIGHTS_MARKET_SEED", seed)
        with pytest.raises(ValidationError) as exc_info:
            load_config(path)
        assert "random_seed" in str(exc_info.value)


class TestDeepMerge:
    def test_nested(self):
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        merged = _deep_merge(base, {"a": {"y": 3}, "c": 4})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
        assert base == {"a": {"x": 1, "y": 2}, "b": 1}
