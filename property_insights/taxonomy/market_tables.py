"""
Static market lookup tables: neighborhood growth, property-type growth,
market factors and the region / property-category forecasts.

The tables are process-wide constants.  ``get_market_tables()`` builds the
``MarketTables`` snapshot on first use and returns the same instance on every
later call; all mappings are read-only proxies, so concurrent readers need no
synchronisation.

Lookups are case-insensitive.  ``require_*`` lookups are strict and raise
``LookupMiss``; the ``*_rate`` accessors used by the engines catch the miss
and return the documented fallback rate, so a miss never reaches a caller.

This module has NO imports from any other ``property_insights`` package
except ``taxonomy.tiers`` and ``errors``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional

from property_insights.errors import LookupMiss
from property_insights.taxonomy.tiers import MarketLevel

logger = logging.getLogger(__name__)

# Fallback rates (%) used when a key is absent from a table.
NEIGHBORHOOD_FALLBACK_RATE: float = 4.5
PROPERTY_TYPE_FALLBACK_RATE: float = 4.0
TREND_FALLBACK_RATE: float = 4.0
DEFAULT_TREND_NEIGHBORHOOD: str = "Central"

# Average annual price change by neighborhood (%)
_NEIGHBORHOOD_GROWTH: dict[str, float] = {
    "Downtown":      5.2,
    "Westside":      4.8,
    "Eastside":      3.9,
    "Northside":     6.1,
    "Southside":     2.7,
    "Suburban":      3.5,
    "Beachfront":    7.2,
    "Mountain View": 5.8,
    "Riverside":     4.3,
    "Central":       5.5,
}

# Average annual price change by property type (%)
_PROPERTY_TYPE_GROWTH: dict[str, float] = {
    "Apartment": 3.8,
    "House":     4.5,
    "Condo":     4.2,
    "Townhouse": 3.9,
    "Villa":     5.1,
    "Penthouse": 6.3,
    "Duplex":    3.7,
    "Studio":    3.2,
    "Loft":      4.7,
}

# Five-year annual forecast by market region (%), used for opportunity scoring
REGION_FORECASTS: Mapping[str, float] = MappingProxyType({
    "Downtown":       4.5,
    "Suburban North": 5.8,
    "Eastside":       4.2,
    "Westside":       3.5,
    "Southside":      5.0,
})

# Five-year annual forecast by property category (%)
PROPERTY_TYPE_FORECASTS: Mapping[str, float] = MappingProxyType({
    "Single-Family Home": 4.8,
    "Condominium":        4.2,
    "Townhouse":          4.5,
    "Multi-Family":       3.5,
    "Luxury":             2.5,
})


@dataclass(frozen=True)
class MarketFactors:
    """Macro market conditions applied to every neighborhood."""

    interest_rate: float = 3.5
    economic_growth: float = 2.8
    housing_demand: str = "high"
    construction_costs: str = "increasing"
    inventory_level: str = "low"

    @property
    def supply_level(self) -> MarketLevel:
        """Supply level implied by the inventory level (defaults to Moderate)."""
        if self.inventory_level == "low":
            return MarketLevel.LOW
        if self.inventory_level == "high":
            return MarketLevel.HIGH
        return MarketLevel.MODERATE


@dataclass(frozen=True)
class MarketTables:
    """Immutable snapshot of every static lookup table.

    Attributes:
        neighborhood_growth:  Display name -> annual growth rate (%).
        property_type_growth: Display name -> annual growth rate (%).
        market_factors:       Macro conditions.
    """

    neighborhood_growth: Mapping[str, float]
    property_type_growth: Mapping[str, float]
    market_factors: MarketFactors
    _neighborhood_index: Mapping[str, float]
    _property_type_index: Mapping[str, float]

    # ── Neighborhoods ─────────────────────────────────────────────────────────

    def neighborhood_rate(
        self,
        neighborhood: Optional[str],
        fallback: float = NEIGHBORHOOD_FALLBACK_RATE,
    ) -> float:
        """Growth rate for ``neighborhood``, or ``fallback`` on a miss."""
        try:
            return self.require_neighborhood(neighborhood)
        except LookupMiss as miss:
            logger.debug("%s Using fallback %.1f%%.", miss, fallback)
            return fallback

    def is_known_neighborhood(self, neighborhood: Optional[str]) -> bool:
        return bool(neighborhood) and neighborhood.strip().lower() in self._neighborhood_index

    def require_neighborhood(self, neighborhood: Optional[str]) -> float:
        """Strict lookup; raises ``LookupMiss`` when absent."""
        if not self.is_known_neighborhood(neighborhood):
            raise LookupMiss("neighborhood_growth", neighborhood or "")
        return self._neighborhood_index[neighborhood.strip().lower()]

    # ── Property types ────────────────────────────────────────────────────────

    def property_type_rate(
        self,
        property_type: Optional[str],
        fallback: float = PROPERTY_TYPE_FALLBACK_RATE,
    ) -> float:
        """Growth rate for ``property_type``, or ``fallback`` on a miss."""
        try:
            return self.require_property_type(property_type)
        except LookupMiss as miss:
            logger.debug("%s Using fallback %.1f%%.", miss, fallback)
            return fallback

    def is_known_property_type(self, property_type: Optional[str]) -> bool:
        return bool(property_type) and property_type.strip().lower() in self._property_type_index

    def require_property_type(self, property_type: Optional[str]) -> float:
        """Strict lookup; raises ``LookupMiss`` when absent."""
        if not self.is_known_property_type(property_type):
            raise LookupMiss("property_type_growth", property_type or "")
        return self._property_type_index[property_type.strip().lower()]

    @property
    def max_neighborhood_rate(self) -> float:
        return max(self.neighborhood_growth.values())


def build_market_tables(
    neighborhood_growth: Mapping[str, float],
    property_type_growth: Mapping[str, float],
    market_factors: Optional[MarketFactors] = None,
) -> MarketTables:
    """Build a read-only ``MarketTables`` snapshot from plain mappings."""
    return MarketTables(
        neighborhood_growth=MappingProxyType(dict(neighborhood_growth)),
        property_type_growth=MappingProxyType(dict(property_type_growth)),
        market_factors=market_factors or MarketFactors(),
        _neighborhood_index=MappingProxyType(
            {k.strip().lower(): v for k, v in neighborhood_growth.items()}
        ),
        _property_type_index=MappingProxyType(
            {k.strip().lower(): v for k, v in property_type_growth.items()}
        ),
    )


@lru_cache(maxsize=1)
def get_market_tables() -> MarketTables:
    """Return the process-wide ``MarketTables`` instance (built once)."""
    return build_market_tables(_NEIGHBORHOOD_GROWTH, _PROPERTY_TYPE_GROWTH)
