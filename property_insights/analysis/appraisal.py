"""
Appraisal engine: detailed valuation of an owner-described property.

Value model
-----------
    base      = square_feet * 225
              + bedrooms * 15_000
              + bathrooms * 12_000
              - 500 * age                  (age floored at 0)
              + condition premium          (excellent +50k, good +25k, fair 0, poor -25k)
              + 5_000 per listed feature

    estimate  = max(0, round(base * (1 + jitter))),  jitter drawn from [-0.05, 0.05]
    range     = round(estimate * 0.95) .. round(estimate * 1.05)
    confidence = round(70 + u * 25),  u drawn from [0, 1)

Comparables are the three most similar recent sales from a fixed reference
set; sale dates are expressed relative to ``as_of``.  The market snapshot
uses the neighborhood growth table (5.2% when the neighborhood is unknown)
and a 4.8% city-wide rate.

Output is non-deterministic unless a seeded ``random.Random`` is supplied.
"""

from __future__ import annotations

import logging
import random
from datetime import date, timedelta
from typing import Optional

from property_insights.models.appraisal import (
    AppraisalMarket,
    AppraisalRequest,
    AppraisalResult,
    ComparableSale,
    ValuationFactor,
    ValueRange,
)
from property_insights.taxonomy.market_tables import MarketTables, get_market_tables
from property_insights.taxonomy.tiers import PropertyCondition
from property_insights.utils.time_utils import property_age, utcnow

logger = logging.getLogger(__name__)

PRICE_PER_SQFT = 225
BEDROOM_VALUE = 15_000
BATHROOM_VALUE = 12_000
AGE_PENALTY_PER_YEAR = 500
FEATURE_VALUE = 5_000

CONDITION_PREMIUMS: dict[PropertyCondition, int] = {
    PropertyCondition.EXCELLENT: 50_000,
    PropertyCondition.GOOD: 25_000,
    PropertyCondition.FAIR: 0,
    PropertyCondition.POOR: -25_000,
}

ESTIMATE_JITTER = 0.05
RANGE_SPREAD = 0.05
CONFIDENCE_FLOOR = 70
CONFIDENCE_SPAN = 25
COMPARABLE_COUNT = 3

DEFAULT_NEIGHBORHOOD_GROWTH = 5.2
CITY_GROWTH = 4.8

# id, address, price, sqft, beds, baths, year built, miles, similarity, days since sale
_REFERENCE_SALES: tuple[tuple, ...] = (
    ("comp1", "123 Maple Street, Austin, TX",   425_000, 1850, 3, 2.0, 2010, 0.5, 92, 30),
    ("comp2", "456 Oak Avenue, Austin, TX",     450_000, 1950, 3, 2.5, 2012, 0.7, 88, 45),
    ("comp3", "789 Pine Road, Austin, TX",      410_000, 1750, 3, 2.0, 2008, 0.9, 85, 60),
    ("comp4", "321 Elm Boulevard, Austin, TX",  475_000, 2100, 4, 2.5, 2015, 1.2, 82, 20),
    ("comp5", "654 Cedar Lane, Austin, TX",     435_000, 1900, 3, 2.0, 2011, 1.5, 80, 15),
)

_VALUE_FACTORS: tuple[ValuationFactor, ...] = (
    ValuationFactor(
        name="Location", impact=8,
        description="Property is in a highly desirable neighborhood with good schools and amenities.",
    ),
    ValuationFactor(
        name="Property Size", impact=6,
        description="Square footage is above average for the area, positively impacting value.",
    ),
    ValuationFactor(
        name="Property Age", impact=-2,
        description="The property is older than comparable homes in the area.",
    ),
    ValuationFactor(
        name="Condition", impact=5,
        description="Property is in good condition with modern updates.",
    ),
    ValuationFactor(
        name="Market Trends", impact=7,
        description="The neighborhood has shown consistent price appreciation over the last 3 years.",
    ),
)


def base_value(request: AppraisalRequest, as_of: Optional[date] = None) -> float:
    """Deterministic value before jitter."""
    age = max(0, property_age(request.year_built, as_of) or 0)
    return (
        request.square_feet * PRICE_PER_SQFT
        + request.bedrooms * BEDROOM_VALUE
        + request.bathrooms * BATHROOM_VALUE
        - age * AGE_PENALTY_PER_YEAR
        + CONDITION_PREMIUMS[request.condition]
        + len(request.features) * FEATURE_VALUE
    )


def select_comparables(
    as_of: Optional[date] = None,
    count: int = COMPARABLE_COUNT,
) -> tuple[ComparableSale, ...]:
    """The ``count`` most similar reference sales, best first."""
    ref = as_of or utcnow().date()
    sales = [
        ComparableSale(
            id=sale_id, address=address, price=price, square_feet=sqft,
            bedrooms=beds, bathrooms=baths, year_built=built,
            distance_miles=miles, similarity=similarity,
            sold_date=ref - timedelta(days=days_ago),
        )
        for sale_id, address, price, sqft, beds, baths, built, miles, similarity, days_ago
        in _REFERENCE_SALES
    ]
    sales.sort(key=lambda s: -s.similarity)
    return tuple(sales[:count])


def appraise_property(
    request: AppraisalRequest,
    rng: Optional[random.Random] = None,
    as_of: Optional[date] = None,
    tables: Optional[MarketTables] = None,
) -> AppraisalResult:
    """Appraise ``request`` with comparables, value drivers and market context.

    Args:
        request: Validated description of the property.
        rng:     Jitter source.  Unseeded ``random.Random()`` when omitted.
        as_of:   Reference date for age and sale dates (default: today).
        tables:  Lookup tables (default: the process-wide instance).
    """
    tables = tables or get_market_tables()
    rng = rng or random.Random()

    base = base_value(request, as_of)
    estimate = max(0, round(base * (1 + rng.uniform(-ESTIMATE_JITTER, ESTIMATE_JITTER))))
    confidence = round(CONFIDENCE_FLOOR + rng.random() * CONFIDENCE_SPAN)

    market = AppraisalMarket(
        neighborhood_growth=tables.neighborhood_rate(
            request.neighborhood, fallback=DEFAULT_NEIGHBORHOOD_GROWTH
        ),
        city_growth=CITY_GROWTH,
        price_per_sqft=round(estimate / request.square_feet),
    )

    logger.debug(
        "Appraised property | address=%s | base=%.0f | estimate=%d | confidence=%d",
        request.address, base, estimate, confidence,
    )
    return AppraisalResult(
        estimated_value=estimate,
        value_range=ValueRange(
            low=round(estimate * (1 - RANGE_SPREAD)),
            high=round(estimate * (1 + RANGE_SPREAD)),
        ),
        confidence=confidence,
        comparables=select_comparables(as_of),
        factors=_VALUE_FACTORS,
        market=market,
    )
