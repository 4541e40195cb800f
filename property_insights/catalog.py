"""
Read-only access to the external listings catalog.

The catalog owns listing storage; this package only reads from it.
``InMemoryListingsRepository`` wraps an already-loaded list of records and
``load_catalog_file`` builds one from a JSON export (a list of listing
objects, or ``{"properties": [...]}``).  Rows that fail validation are
skipped with a WARNING so one bad listing never blocks the rest.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

from property_insights.errors import InputValidationError
from property_insights.models.property import PropertyRecord

logger = logging.getLogger(__name__)


class ListingsRepository(Protocol):
    def get(self, property_id: str) -> Optional[PropertyRecord]: ...

    def list_all(self) -> list[PropertyRecord]: ...


class InMemoryListingsRepository:
    """Catalog snapshot held in memory, in insertion order."""

    def __init__(self, records: Iterable[PropertyRecord] = ()) -> None:
        self._records: dict[str, PropertyRecord] = {}
        for record in records:
            self._records[record.id] = record

    def __len__(self) -> int:
        return len(self._records)

    def get(self, property_id: str) -> Optional[PropertyRecord]:
        return self._records.get(property_id)

    def list_all(self) -> list[PropertyRecord]:
        return list(self._records.values())


def parse_catalog_rows(rows: Iterable[dict[str, Any]]) -> list[PropertyRecord]:
    """Validate raw listing dicts; invalid rows are logged and skipped."""
    records: list[PropertyRecord] = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            logger.warning("Skipping catalog row %d | not an object", index)
            continue
        try:
            records.append(PropertyRecord.from_catalog_row(row))
        except InputValidationError as exc:
            logger.warning(
                "Skipping catalog row %d | property_id=%s | %s", index, exc.property_id, exc
            )
    return records


def load_catalog_file(path: Path) -> InMemoryListingsRepository:
    """Load a JSON catalog export.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not a list of listings.
    """
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)

    rows = payload.get("properties") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise ValueError(f"Catalog file {path} must contain a list of properties.")

    records = parse_catalog_rows(rows)
    logger.info("Catalog loaded | path=%s | records=%d | skipped=%d", path, len(records), len(rows) - len(records))
    return InMemoryListingsRepository(records)
