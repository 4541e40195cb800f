"""
Market trend synthesizer: neighborhood trend, demand/supply levels and a
synthetic 12-month price-index history.

History series
--------------
Starts from index 100 and compounds monthly::

    value_i = value_{i-1} * (1 + (current_trend / 100) * jitter_i / 12)

with ``jitter_i`` drawn independently from [0.9, 1.1] for every point.  Values
are rounded to one decimal.  Labels are the trailing 12 month names ending
with the reference month.

The forecast is ``current_trend * jitter`` with one further independent draw.

Output is non-deterministic unless a seeded ``random.Random`` is supplied —
pass ``rng=random.Random(seed)`` to reproduce a series exactly.

Demand level: trend > 5 -> High; trend < 3 -> Low; else Moderate.
Supply level comes from the static market-factors inventory level.
"""

from __future__ import annotations

import random
from datetime import date
from typing import Optional

from property_insights.models.analysis import MarketTrend, PricePoint
from property_insights.models.property import PropertyRecord
from property_insights.taxonomy.market_tables import (
    DEFAULT_TREND_NEIGHBORHOOD,
    TREND_FALLBACK_RATE,
    MarketTables,
    get_market_tables,
)
from property_insights.taxonomy.tiers import MarketLevel
from property_insights.utils.time_utils import trailing_month_labels

HISTORY_POINTS = 12
HISTORY_BASE_VALUE = 100.0
JITTER_LOW = 0.9
JITTER_HIGH = 1.1


def _jitter(rng: random.Random) -> float:
    return rng.uniform(JITTER_LOW, JITTER_HIGH)


def classify_demand(current_trend: float) -> MarketLevel:
    if current_trend > 5:
        return MarketLevel.HIGH
    if current_trend < 3:
        return MarketLevel.LOW
    return MarketLevel.MODERATE


def synthesize_history(
    current_trend: float,
    rng: random.Random,
    as_of: Optional[date] = None,
) -> tuple[PricePoint, ...]:
    """Build the 12-point monthly index series for ``current_trend``."""
    labels = trailing_month_labels(as_of, HISTORY_POINTS)
    value = HISTORY_BASE_VALUE
    points: list[PricePoint] = []
    for label in labels:
        value = value * (1 + (current_trend / 100) * _jitter(rng) / 12)
        points.append(PricePoint(month=label, value=round(value, 1)))
    return tuple(points)


def analyze_market_trend(
    prop: PropertyRecord,
    rng: Optional[random.Random] = None,
    as_of: Optional[date] = None,
    tables: Optional[MarketTables] = None,
) -> MarketTrend:
    """Summarise the market trend of ``prop``'s neighborhood.

    Only the neighborhood of ``prop`` is used; a missing neighborhood defaults
    to ``"Central"`` and an unknown one to a 4.0% trend.

    Args:
        prop:   Property whose neighborhood is analysed.
        rng:    Jitter source.  Unseeded ``random.Random()`` when omitted.
        as_of:  Reference date for month labels (default: today).
        tables: Lookup tables (default: the process-wide instance).
    """
    tables = tables or get_market_tables()
    rng = rng or random.Random()
    neighborhood = prop.neighborhood or DEFAULT_TREND_NEIGHBORHOOD
    current_trend = tables.neighborhood_rate(neighborhood, fallback=TREND_FALLBACK_RATE)

    history = synthesize_history(current_trend, rng, as_of)
    forecast = current_trend * _jitter(rng)

    return MarketTrend(
        neighborhood=neighborhood,
        current_trend=current_trend,
        forecast=forecast,
        demand_level=classify_demand(current_trend),
        supply_level=tables.market_factors.supply_level,
        price_history=history,
    )


def find_trending_neighborhoods(
    count: int = 5,
    tables: Optional[MarketTables] = None,
) -> list[tuple[str, float]]:
    """Top ``count`` neighborhoods by growth rate, highest first.

    Ties keep table order.
    """
    tables = tables or get_market_tables()
    ranked = sorted(tables.neighborhood_growth.items(), key=lambda kv: -kv[1])
    return ranked[:count]
