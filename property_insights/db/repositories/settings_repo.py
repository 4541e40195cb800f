"""
Repository for per-user ``RecommendationSettings``.

A user with no stored row gets the model defaults; nothing is written until
``save`` or ``update`` is called.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional

from property_insights.db.repositories.base import BaseRepository
from property_insights.models.recommendation import RecommendationSettings

logger = logging.getLogger(__name__)

_FIELDS: tuple[str, ...] = tuple(RecommendationSettings.model_fields)


class SettingsRepository(BaseRepository):
    """CRUD for the ``recommendation_settings`` table.

    Args:
        conn:     Open connection with the schema applied.
        defaults: Settings returned for users with no stored row.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        defaults: Optional[RecommendationSettings] = None,
    ) -> None:
        super().__init__(conn)
        self.defaults = defaults or RecommendationSettings()

    def get(self, user_id: str) -> RecommendationSettings:
        """Stored settings for ``user_id``, or defaults when none are stored."""
        row = self.fetchone(
            f"SELECT {', '.join(_FIELDS)} FROM recommendation_settings WHERE user_id = ?;",
            (user_id,),
        )
        if row is None:
            return self.defaults
        return self._row_to_model(row)

    def exists(self, user_id: str) -> bool:
        row = self.fetchone(
            "SELECT 1 FROM recommendation_settings WHERE user_id = ?;", (user_id,)
        )
        return row is not None

    def save(self, user_id: str, settings: RecommendationSettings) -> RecommendationSettings:
        """Insert or replace the full settings row for ``user_id``."""
        values = settings.model_dump()
        columns = ", ".join(_FIELDS)
        placeholders = ", ".join(f":{f}" for f in _FIELDS)
        assignments = ", ".join(f"{f} = excluded.{f}" for f in _FIELDS)
        self.execute(
            f"""
            INSERT INTO recommendation_settings (user_id, {columns})
            VALUES (:user_id, {placeholders})
            ON CONFLICT(user_id) DO UPDATE SET
                {assignments},
                updated_at = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            {"user_id": user_id, **values},
        )
        logger.info("Recommendation settings saved | user_id=%s | %s", user_id, values)
        return settings

    def update(self, user_id: str, **changes: Any) -> RecommendationSettings:
        """Apply a partial update on top of the current settings.

        Keys may be field names or their camelCase aliases.

        Raises:
            KeyError: For an unknown settings key.
            pydantic.ValidationError: If the merged settings are invalid.
        """
        current = self.get(user_id).model_dump()
        aliases = {
            info.alias: name
            for name, info in RecommendationSettings.model_fields.items()
            if info.alias
        }
        for key, value in changes.items():
            name = aliases.get(key, key)
            if name not in current:
                raise KeyError(f"Unknown recommendation setting: {key!r}")
            current[name] = value
        return self.save(user_id, RecommendationSettings.model_validate(current))

    def delete(self, user_id: str) -> None:
        self.execute("DELETE FROM recommendation_settings WHERE user_id = ?;", (user_id,))

    @staticmethod
    def _row_to_model(row: sqlite3.Row) -> RecommendationSettings:
        return RecommendationSettings.model_validate({f: row[f] for f in _FIELDS})
