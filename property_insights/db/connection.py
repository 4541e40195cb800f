"""
SQLite connection management for settings persistence.

``get_connection()`` yields a connection with foreign keys on, an optional
WAL journal, a busy timeout and ``sqlite3.Row`` rows.  It commits on clean
exit and rolls back on exception.  ``open_database()`` does the same from a
``DatabaseConfig`` and applies the schema first.

Usage::

    from property_insights.db.connection import open_database

    with open_database(config.database) as conn:
        SettingsRepository(conn).get("user-1")
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from property_insights.config import DatabaseConfig
from property_insights.db.schema import apply_schema


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    Parent directories of ``db_path`` are created when missing.  Use
    ``":memory:"`` for a throwaway database.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened or is locked.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row

    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
        if wal_mode and db_path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()


@contextmanager
def open_database(db: DatabaseConfig) -> Generator[sqlite3.Connection, None, None]:
    """``get_connection`` for ``db`` with the schema applied."""
    with get_connection(db.db_path, db.wal_mode, db.busy_timeout_ms) as conn:
        apply_schema(conn)
        yield conn
