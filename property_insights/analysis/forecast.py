"""
Forecast helpers: compound-growth value projection and forecast-driven
opportunity ranking.

Projection rate (percent per year)
----------------------------------
    4.0
    + 1.0  house      + 0.5  condo      - 1.0  land
    + 1.0  neighborhood or city mentions "downtown" or "central"
    + 0.5  otherwise, either mentions "suburban" or "north"
    + 1.0  age < 5 years
    - 0.5  age > 30 years

    future_value = price * (1 + rate / 100) ** years

Confidence: years <= 2 -> high; years > 7 -> low; else medium.

Opportunity score
-----------------
    region forecast * 10      first region whose name contains the neighborhood
                              (then the city), case-insensitive
    + category forecast * 8   first category whose name contains the type
    + 15 / 10 / 5             price per unit area < 200 / < 300 / < 400
    + 15 / 10 / 5             age < 5 / < 10 / < 20 years
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping, Optional

from property_insights.analysis.valuation import validate_property
from property_insights.errors import InputValidationError
from property_insights.models.appraisal import ValueProjection
from property_insights.models.property import PropertyRecord
from property_insights.taxonomy.market_tables import PROPERTY_TYPE_FORECASTS, REGION_FORECASTS
from property_insights.taxonomy.tiers import ProjectionConfidence
from property_insights.utils.time_utils import property_age

logger = logging.getLogger(__name__)

BASE_PROJECTION_RATE = 4.0
TYPE_ADJUSTMENTS: dict[str, float] = {"house": 1.0, "condo": 0.5, "land": -1.0}
PRIME_LOCATION_TERMS = ("downtown", "central")
PRIME_LOCATION_BONUS = 1.0
GROWTH_LOCATION_TERMS = ("suburban", "north")
GROWTH_LOCATION_BONUS = 0.5
NEW_BUILD_MAX_AGE = 5
NEW_BUILD_BONUS = 1.0
OLD_BUILD_MIN_AGE = 30
OLD_BUILD_PENALTY = 0.5

HIGH_CONFIDENCE_MAX_YEARS = 2
MEDIUM_CONFIDENCE_MAX_YEARS = 7

REGION_WEIGHT = 10
CATEGORY_WEIGHT = 8
# (exclusive upper bound, bonus), first match wins
_PRICE_PER_AREA_BONUSES: tuple[tuple[float, float], ...] = ((200, 15), (300, 10), (400, 5))
_AGE_BONUSES: tuple[tuple[int, float], ...] = ((5, 15), (10, 10), (20, 5))


@dataclass(frozen=True)
class MarketOpportunity:
    """A property ranked by regional and category forecasts."""

    property: PropertyRecord
    score: float
    region_forecast: Optional[float] = None
    category_forecast: Optional[float] = None


def projection_rate(prop: PropertyRecord, as_of: Optional[date] = None) -> float:
    """Annual growth rate (%) used by ``project_future_value``."""
    rate = BASE_PROJECTION_RATE + TYPE_ADJUSTMENTS.get(prop.type.strip().lower(), 0.0)

    places = [p.lower() for p in (prop.location.neighborhood, prop.location.city) if p]
    if any(term in place for place in places for term in PRIME_LOCATION_TERMS):
        rate += PRIME_LOCATION_BONUS
    elif any(term in place for place in places for term in GROWTH_LOCATION_TERMS):
        rate += GROWTH_LOCATION_BONUS

    age = property_age(prop.year_built, as_of)
    if age is not None:
        if age < NEW_BUILD_MAX_AGE:
            rate += NEW_BUILD_BONUS
        elif age > OLD_BUILD_MIN_AGE:
            rate -= OLD_BUILD_PENALTY
    return rate


def projection_confidence(years: int) -> ProjectionConfidence:
    if years <= HIGH_CONFIDENCE_MAX_YEARS:
        return ProjectionConfidence.HIGH
    if years > MEDIUM_CONFIDENCE_MAX_YEARS:
        return ProjectionConfidence.LOW
    return ProjectionConfidence.MEDIUM


def project_future_value(
    prop: PropertyRecord,
    years: int = 5,
    as_of: Optional[date] = None,
) -> ValueProjection:
    """Compound ``prop.price`` forward ``years`` years.

    Raises:
        InputValidationError: If the price is not positive or ``years`` < 0.
    """
    validate_property(prop)
    if years < 0:
        raise InputValidationError(
            f"Projection horizon must be >= 0 years, got {years}.", property_id=prop.id
        )
    rate = projection_rate(prop, as_of)
    return ValueProjection(
        current_value=prop.price,
        future_value=prop.price * (1 + rate / 100) ** years,
        growth_rate=rate,
        years=years,
        confidence=projection_confidence(years),
    )


def _first_containing(table: Mapping[str, float], needle: Optional[str]) -> Optional[float]:
    if not needle or not needle.strip():
        return None
    needle = needle.strip().lower()
    for name, forecast in table.items():
        if needle in name.lower():
            return forecast
    return None


def _tier_bonus(value: float, tiers: tuple[tuple[float, float], ...]) -> float:
    for upper, bonus in tiers:
        if value < upper:
            return bonus
    return 0.0


def opportunity_score(prop: PropertyRecord, as_of: Optional[date] = None) -> MarketOpportunity:
    """Score ``prop`` against the region and category forecasts."""
    region = _first_containing(REGION_FORECASTS, prop.neighborhood)
    if region is None:
        region = _first_containing(REGION_FORECASTS, prop.location.city)
    category = _first_containing(PROPERTY_TYPE_FORECASTS, prop.type)

    score = 0.0
    if region is not None:
        score += region * REGION_WEIGHT
    if category is not None:
        score += category * CATEGORY_WEIGHT
    if prop.area and prop.price > 0:
        score += _tier_bonus(prop.price / prop.area, _PRICE_PER_AREA_BONUSES)
    age = property_age(prop.year_built, as_of)
    if age is not None:
        score += _tier_bonus(age, _AGE_BONUSES)

    return MarketOpportunity(prop, score, region, category)


def find_market_opportunities(
    properties: Iterable[PropertyRecord],
    count: int = 5,
    as_of: Optional[date] = None,
) -> list[MarketOpportunity]:
    """Top ``count`` properties by forecast score, highest first.

    Properties with an invalid price are logged and skipped.  Ties keep
    input order.
    """
    ranked: list[MarketOpportunity] = []
    for prop in properties:
        try:
            validate_property(prop)
        except InputValidationError as exc:
            logger.warning(
                "Forecast scan excluded property | property_id=%s | %s: %s",
                prop.id, type(exc).__name__, exc,
            )
            continue
        ranked.append(opportunity_score(prop, as_of))

    ranked.sort(key=lambda o: -o.score)
    return ranked[:count]
