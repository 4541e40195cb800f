"""
SQLite schema DDL.

Only ``RecommendationSettings`` outlives a process; every other entity is
recomputed per session.  Settings are stored one row per user, one column
per field, so a partially-written row is impossible.

``apply_schema()`` is idempotent (``IF NOT EXISTS`` everywhere).
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_RECOMMENDATION_SETTINGS = """
CREATE TABLE IF NOT EXISTS recommendation_settings (
    user_id                       TEXT    PRIMARY KEY,
    enable_personalized           INTEGER NOT NULL DEFAULT 1 CHECK (enable_personalized IN (0, 1)),
    enable_similar_properties     INTEGER NOT NULL DEFAULT 1 CHECK (enable_similar_properties IN (0, 1)),
    enable_trending               INTEGER NOT NULL DEFAULT 1 CHECK (enable_trending IN (0, 1)),
    min_match_score               REAL    NOT NULL DEFAULT 0.7
                                          CHECK (min_match_score BETWEEN 0.0 AND 1.0),
    notify_on_new_matches         INTEGER NOT NULL DEFAULT 1 CHECK (notify_on_new_matches IN (0, 1)),
    max_recommendations_per_day   INTEGER NOT NULL DEFAULT 5
                                          CHECK (max_recommendations_per_day >= 0),
    updated_at                    TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_ALL_DDL: list[str] = [
    _DDL_RECOMMENDATION_SETTINGS,
]

ALL_TABLE_NAMES = [
    "recommendation_settings",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.  Safe to call repeatedly."""
    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)
    conn.commit()
    logger.debug("Schema applied: %d table(s) created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
