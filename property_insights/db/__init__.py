"""SQLite persistence: connection handling, schema and repositories."""
