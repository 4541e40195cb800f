"""
Valuation engine: heuristic price prediction for a single property.

Growth model
------------
    base     = neighborhood_rate * 0.6 + property_type_rate * 0.4
    adjusted = base
               + 0.5   if age < 5 years
               - 0.7   if age > 30 years
               + 0.3   if any premium amenity (pool, gym, doorman, parking, garden)

    growth_1y = adjusted
    growth_3y = adjusted * 2.8      # non-compounding multipliers that
    growth_5y = adjusted * 4.5      # approximate compound growth

    predicted_price_h = price * (1 + growth_h / 100)

Misses in the static tables fall back to 4.5% (neighborhood) and 4.0%
(property type).

Confidence tiers (inclusive lower bound, evaluated top-down)
------------------------------------------------------------
    adjusted >= 6.0  -> Very High
    adjusted >= 5.0  -> High
    adjusted >= 3.0  -> Moderate
    otherwise        -> Low
"Very Low" is never produced by these thresholds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Optional

from property_insights.errors import InputValidationError
from property_insights.models.analysis import PricePrediction
from property_insights.models.property import PropertyRecord
from property_insights.taxonomy.market_tables import MarketTables, get_market_tables
from property_insights.taxonomy.tiers import PredictionConfidence
from property_insights.utils.time_utils import property_age

PREMIUM_AMENITIES: frozenset[str] = frozenset({"pool", "gym", "doorman", "parking", "garden"})

NEIGHBORHOOD_WEIGHT = 0.6
PROPERTY_TYPE_WEIGHT = 0.4

NEW_BUILD_MAX_AGE = 5
NEW_BUILD_BONUS = 0.5
OLD_BUILD_MIN_AGE = 30
OLD_BUILD_PENALTY = 0.7
PREMIUM_AMENITY_BONUS = 0.3

HORIZON_MULTIPLIERS: dict[int, float] = {1: 1.0, 3: 2.8, 5: 4.5}

# (lower bound, tier) — first match wins
_CONFIDENCE_THRESHOLDS: tuple[tuple[float, PredictionConfidence], ...] = (
    (6.0, PredictionConfidence.VERY_HIGH),
    (5.0, PredictionConfidence.HIGH),
    (3.0, PredictionConfidence.MODERATE),
)


@dataclass(frozen=True)
class GrowthBreakdown:
    """Intermediate growth-rate components (all in percentage points)."""

    neighborhood_rate: float
    property_type_rate: float
    base_rate: float
    age_adjustment: float
    amenity_adjustment: float

    @property
    def adjusted_rate(self) -> float:
        return self.base_rate + self.age_adjustment + self.amenity_adjustment


def validate_property(prop: PropertyRecord) -> None:
    """Raise ``InputValidationError`` if ``prop`` cannot be valued."""
    if not prop.id:
        raise InputValidationError("Property id is required.")
    if prop.price is None or not math.isfinite(prop.price) or prop.price <= 0:
        raise InputValidationError(
            f"Property price must be > 0, got {prop.price!r}.", property_id=prop.id
        )


def has_premium_amenity(prop: PropertyRecord) -> bool:
    return any(a.strip().lower() in PREMIUM_AMENITIES for a in prop.amenities)


def compute_growth(
    prop: PropertyRecord,
    as_of: Optional[date] = None,
    tables: Optional[MarketTables] = None,
) -> GrowthBreakdown:
    """Compute the growth-rate breakdown for ``prop``.

    Args:
        prop:   Property to value.
        as_of:  Reference date for the age calculation (default: today).
        tables: Lookup tables (default: the process-wide instance).
    """
    tables = tables or get_market_tables()
    neighborhood_rate = tables.neighborhood_rate(prop.neighborhood)
    type_rate = tables.property_type_rate(prop.type)
    base = neighborhood_rate * NEIGHBORHOOD_WEIGHT + type_rate * PROPERTY_TYPE_WEIGHT

    age = property_age(prop.year_built, as_of)
    age_adjustment = 0.0
    if age is not None:
        if age < NEW_BUILD_MAX_AGE:
            age_adjustment = NEW_BUILD_BONUS
        elif age > OLD_BUILD_MIN_AGE:
            age_adjustment = -OLD_BUILD_PENALTY

    amenity_adjustment = PREMIUM_AMENITY_BONUS if has_premium_amenity(prop) else 0.0

    return GrowthBreakdown(
        neighborhood_rate=neighborhood_rate,
        property_type_rate=type_rate,
        base_rate=base,
        age_adjustment=age_adjustment,
        amenity_adjustment=amenity_adjustment,
    )


def classify_confidence(adjusted_growth_rate: float) -> PredictionConfidence:
    """Map an adjusted growth rate to a confidence tier."""
    for lower_bound, tier in _CONFIDENCE_THRESHOLDS:
        if adjusted_growth_rate >= lower_bound:
            return tier
    return PredictionConfidence.LOW


def predict_property_price(
    prop: PropertyRecord,
    as_of: Optional[date] = None,
    tables: Optional[MarketTables] = None,
) -> PricePrediction:
    """Predict 1/3/5-year prices for a property.

    Pure function of the record, the reference date and the static tables.

    Raises:
        InputValidationError: If ``prop.price <= 0`` or the id is missing.
    """
    validate_property(prop)
    growth = compute_growth(prop, as_of=as_of, tables=tables)
    adjusted = growth.adjusted_rate

    rates = {h: adjusted * m for h, m in HORIZON_MULTIPLIERS.items()}
    price = prop.price

    return PricePrediction(
        current_price=price,
        predicted_price_1y=price * (1 + rates[1] / 100),
        predicted_price_3y=price * (1 + rates[3] / 100),
        predicted_price_5y=price * (1 + rates[5] / 100),
        growth_rate_1y=rates[1],
        growth_rate_3y=rates[3],
        growth_rate_5y=rates[5],
        confidence=classify_confidence(adjusted),
    )
