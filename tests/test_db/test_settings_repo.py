"""
Tests for property_insights/db/repositories/settings_repo.py.

What we test
------------
SettingsRepository:
  - Unknown user -> defaults, nothing written.
  - save() round-trips every field and overwrites on a second save.
  - update() merges a partial change; accepts camelCase aliases.
  - update() rejects unknown keys (KeyError) and invalid values
    (ValidationError) without writing.
  - Custom defaults are honoured.
  - delete() reverts to defaults.
  - Settings survive reopening a file database.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from property_insights.config import DatabaseConfig
from property_insights.db.connection import open_database
from property_insights.db.repositories.settings_repo import SettingsRepository
from property_insights.models.recommendation import RecommendationSettings


class TestSettingsRepository:
    def test_defaults_for_unknown_user(self, in_memory_db):
        repo = SettingsRepository(in_memory_db)
        assert repo.get("u1") == RecommendationSettings()
        assert not repo.exists("u1")

    def test_save_round_trip(self, in_memory_db):
        repo = SettingsRepository(in_memory_db)
        settings = RecommendationSettings(
            enable_personalized=False,
            enable_similar_properties=True,
            enable_trending=False,
            min_match_score=0.55,
            notify_on_new_matches=False,
            max_recommendations_per_day=12,
        )
        repo.save("u1", settings)
        assert repo.get("u1") == settings
        assert repo.exists("u1")

    def test_second_save_overwrites(self, in_memory_db):
        repo = SettingsRepository(in_memory_db)
        repo.save("u1", RecommendationSettings(min_match_score=0.5))
        repo.save("u1", RecommendationSettings(min_match_score=0.9))
        assert repo.get("u1").min_match_score == pytest.approx(0.9)
        count = in_memory_db.execute("SELECT COUNT(*) FROM recommendation_settings;").fetchone()[0]
        assert count == 1

    def test_partial_update(self, in_memory_db):
        repo = SettingsRepository(in_memory_db)
        repo.update("u1", min_match_score=0.6)
        updated = repo.update("u1", enableTrending=False)
        assert updated.min_match_score == pytest.approx(0.6)
        assert updated.enable_trending is False
        assert repo.get("u1") == updated

    def test_unknown_key_rejected(self, in_memory_db):
        repo = SettingsRepository(in_memory_db)
        with pytest.raises(KeyError):
            repo.update("u1", dark_mode=True)
        assert not repo.exists("u1")

    def test_invalid_value_rejected(self, in_memory_db):
        repo = SettingsRepository(in_memory_db)
        with pytest.raises(ValidationError):
            repo.update("u1", min_match_score=1.2)
        with pytest.raises(ValidationError):
            repo.update("u1", max_recommendations_per_day=-1)
        assert not repo.exists("u1")

    def test_custom_defaults(self, in_memory_db):
        defaults = RecommendationSettings(min_match_score=0.5)
        repo = SettingsRepository(in_memory_db, defaults=defaults)
        assert repo.get("u1").min_match_score == pytest.approx(0.5)
        assert repo.update("u1", enable_trending=False).min_match_score == pytest.approx(0.5)

    def test_delete(self, in_memory_db):
        repo = SettingsRepository(in_memory_db)
        repo.save("u1", RecommendationSettings(max_recommendations_per_day=1))
        repo.delete("u1")
        assert repo.get("u1") == RecommendationSettings()

    def test_users_are_independent(self, in_memory_db):
        repo = SettingsRepository(in_memory_db)
        repo.update("u1", min_match_score=0.2)
        assert repo.get("u2").min_match_score == pytest.approx(0.7)

    def test_persists_across_connections(self, tmp_path):
        db = DatabaseConfig(db_path=str(tmp_path / "settings.db"))
        with open_database(db) as conn:
            SettingsRepository(conn).update("u1", notify_on_new_matches=False)
        with open_database(db) as conn:
            assert SettingsRepository(conn).get("u1").notify_on_new_matches is False
