"""
Tests for property_insights/taxonomy/market_tables.py.

What we test
------------
  - get_market_tables() returns one shared, read-only instance.
  - Strict lookups are case-insensitive and raise LookupMiss on a miss.
  - Rate lookups return the documented fallbacks instead of raising.
  - MarketFactors.supply_level follows the inventory level.
"""

from __future__ import annotations

import pytest

from property_insights.errors import LookupMiss
from property_insights.taxonomy.market_tables import (
    NEIGHBORHOOD_FALLBACK_RATE,
    PROPERTY_TYPE_FALLBACK_RATE,
    MarketFactors,
    get_market_tables,
)
from property_insights.taxonomy.tiers import MarketLevel


class TestSharedInstance:
    def test_same_instance(self):
        assert get_market_tables() is get_market_tables()

    def test_read_only(self):
        with pytest.raises(TypeError):
            get_market_tables().neighborhood_growth["Downtown"] = 9.9


class TestStrictLookups:
    @pytest.mark.parametrize("name", ["Beachfront", "beachfront", "  BEACHFRONT "])
    def test_neighborhood_case_insensitive(self, name):
        assert get_market_tables().require_neighborhood(name) == pytest.approx(7.2)

    def test_property_type(self):
        assert get_market_tables().require_property_type("penthouse") == pytest.approx(6.3)

    @pytest.mark.parametrize("name", ["Atlantis", "", None])
    def test_neighborhood_miss(self, name):
        with pytest.raises(LookupMiss) as exc_info:
            get_market_tables().require_neighborhood(name)
        assert exc_info.value.table == "neighborhood_growth"

    def test_property_type_miss(self):
        with pytest.raises(LookupMiss) as exc_info:
            get_market_tables().require_property_type("castle")
        assert exc_info.value.key == "castle"
        assert isinstance(exc_info.value, LookupError)


class TestFallbackLookups:
    def test_neighborhood_fallback(self):
        tables = get_market_tables()
        assert tables.neighborhood_rate("Atlantis") == NEIGHBORHOOD_FALLBACK_RATE
        assert tables.neighborhood_rate(None) == NEIGHBORHOOD_FALLBACK_RATE
        assert tables.neighborhood_rate("Atlantis", fallback=4.0) == 4.0

    def test_property_type_fallback(self):
        assert get_market_tables().property_type_rate("castle") == PROPERTY_TYPE_FALLBACK_RATE

    def test_known_keys_ignore_fallback(self):
        assert get_market_tables().neighborhood_rate("Downtown", fallback=0.0) == pytest.approx(5.2)


class TestMarketFactors:
    @pytest.mark.parametrize("inventory, level", [
        ("low", MarketLevel.LOW),
        ("high", MarketLevel.HIGH),
        ("balanced", MarketLevel.MODERATE),
    ])
    def test_supply_level(self, inventory, level):
        assert MarketFactors(inventory_level=inventory).supply_level == level

    def test_max_rate(self):
        assert get_market_tables().max_neighborhood_rate == pytest.approx(7.2)
