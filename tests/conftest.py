"""
Shared pytest fixtures for the property-insights test suite.

Provides:
  - ``in_memory_db``: fresh in-memory SQLite connection with the schema applied.
  - ``as_of`` / ``fixed_now``: a fixed reference date and UTC datetime.
  - ``make_property``: factory for ``PropertyRecord`` with sensible defaults.
  - ``downtown_house``: the worked valuation example (Downtown house, 3 years
    old, one premium amenity, $300,000).
  - ``catalog``: a small mixed catalog.
  - ``seeded_rng``: ``random.Random(42)``.
  - ``telemetry_sink`` / ``profiles``: in-memory behavior tracking.
  - ``service``: a ``RecommendationService`` wired to the fixtures above.
"""

from __future__ import annotations

import logging
import random
import sqlite3
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Generator

import pytest

from property_insights.catalog import InMemoryListingsRepository
from property_insights.clients.telemetry import NullTelemetrySink, TelemetryDispatcher
from property_insights.db.repositories.settings_repo import SettingsRepository
from property_insights.db.schema import apply_schema
from property_insights.models.property import PropertyLocation, PropertyRecord
from property_insights.personalization.profile import ProfileBuilder
from property_insights.recommendations.service import RecommendationService

AS_OF = date(2026, 6, 1)
FIXED_NOW = datetime(2026, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied."""
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Logging ───────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def _reset_root_logging() -> Generator[None, None, None]:
    """Drop handlers installed by ``configure_logging`` during a test."""
    root = logging.getLogger()
    before = set(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in before and type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


# ── Clock / randomness ────────────────────────────────────────────────────────

@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(42)


# ── Properties ────────────────────────────────────────────────────────────────

@pytest.fixture
def make_property() -> Callable[..., PropertyRecord]:
    """Factory: ``make_property(id="p-1", price=..., neighborhood=..., ...)``."""

    def _make(
        id: str = "p-1",
        price: float = 350_000,
        type: str = "house",
        neighborhood: str | None = "Downtown",
        city: str | None = "Springfield",
        year_built: int | None = 2010,
        amenities: tuple[str, ...] = (),
        created_at: datetime | None = None,
        **extra: Any,
    ) -> PropertyRecord:
        return PropertyRecord(
            id=id,
            title=extra.pop("title", f"Listing {id}"),
            price=price,
            type=type,
            location=PropertyLocation(neighborhood=neighborhood, city=city),
            bedrooms=extra.pop("bedrooms", 3),
            bathrooms=extra.pop("bathrooms", 2),
            area=extra.pop("area", 1800),
            year_built=year_built,
            amenities=amenities,
            created_at=created_at,
            **extra,
        )

    return _make


@pytest.fixture
def downtown_house(make_property) -> PropertyRecord:
    """Worked example: adjusted growth 5.72%, High confidence."""
    return make_property(
        id="house-dt",
        price=300_000,
        type="house",
        neighborhood="Downtown",
        year_built=AS_OF.year - 3,
        amenities=("Pool",),
    )


@pytest.fixture
def catalog(make_property) -> list[PropertyRecord]:
    """Mixed catalog: strong Downtown matches, a mismatch, a new listing."""
    return [
        make_property(id="p-1", price=350_000, type="house", neighborhood="Downtown",
                      amenities=("Pool", "Garden")),
        make_property(id="p-2", price=420_000, type="house", neighborhood="Downtown",
                      amenities=("Pool",)),
        make_property(id="p-3", price=600_000, type="condo", neighborhood="Westside",
                      amenities=("Gym",)),
        make_property(id="p-4", price=900_000, type="villa", neighborhood="Beachfront",
                      amenities=("Pool", "Doorman")),
        make_property(id="p-5", price=380_000, type="house", neighborhood="Downtown",
                      amenities=("Pool",),
                      created_at=FIXED_NOW - timedelta(days=2)),
    ]


# ── Personalization / recommendations ─────────────────────────────────────────

@pytest.fixture
def telemetry_sink() -> NullTelemetrySink:
    return NullTelemetrySink()


@pytest.fixture
def profiles(telemetry_sink) -> ProfileBuilder:
    return ProfileBuilder(telemetry=TelemetryDispatcher(telemetry_sink))


@pytest.fixture
def service(catalog, profiles, in_memory_db) -> RecommendationService:
    return RecommendationService(
        listings=InMemoryListingsRepository(catalog),
        profiles=profiles,
        settings=SettingsRepository(in_memory_db),
    )
