"""
Recommendation scoring: converts a property + preference snapshot into a
match score in [0, 1] with a component breakdown and reason strings.

Match score (weighted sum, range 0–1)
-------------------------------------
    match = (
        location_fit  * 0.30   # preferred neighborhoods / cities
        + price_fit   * 0.30   # preferred price range
        + type_fit    * 0.25   # preferred property types
        + amenity_fit * 0.15   # preferred amenities
    )

Component explanations (each 0–1)
---------------------------------
location_fit / type_fit:
    Rank of the first matching preference (most frequent = rank 0).
    1.0 - 0.2 * rank, floored at 0.6 for any match.  No match -> 0.
    No preferences at all -> 0.5 (neutral).

price_fit:
    1.0 inside [price_min, price_max].  Outside, decays linearly with the
    relative gap to the nearest bound and reaches 0 at a 50% gap.

amenity_fit:
    Share of preferred amenities the property has.  No preferences -> 0.5.

Trend score (Trending list only; bypasses personal fit)
-------------------------------------------------------
    trend = 0.6 * neighborhood_growth / max_table_growth
          + 0.4 * views / max_views_in_catalog
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from property_insights.models.behavior import PreferenceSnapshot
from property_insights.models.property import PropertyRecord
from property_insights.taxonomy.market_tables import MarketTables, get_market_tables

LOCATION_WEIGHT = 0.30
PRICE_WEIGHT = 0.30
TYPE_WEIGHT = 0.25
AMENITY_WEIGHT = 0.15

NEUTRAL_FIT = 0.5
RANK_STEP = 0.2
MATCH_FLOOR = 0.6
PRICE_ZERO_GAP = 0.5

TREND_GROWTH_WEIGHT = 0.6
TREND_POPULARITY_WEIGHT = 0.4


@dataclass
class FitComponents:
    """Per-component fits (0–1) of one property against one snapshot.

    Attributes:
        location_fit:      Fit of the property location.
        price_fit:         Fit of the asking price.
        type_fit:          Fit of the property type.
        amenity_fit:       Fit of the amenity list.
        matched_location:  Preference that matched, if any.
        matched_type:      Preference that matched, if any.
        matched_amenities: Preferred amenities present on the property.
    """

    location_fit: float
    price_fit:    float
    type_fit:     float
    amenity_fit:  float
    matched_location:  Optional[str] = None
    matched_type:      Optional[str] = None
    matched_amenities: tuple[str, ...] = ()

    def contributions(self) -> dict[str, float]:
        """Weighted contribution of each component, keyed by component name."""
        return {
            "location": self.location_fit * LOCATION_WEIGHT,
            "price":    self.price_fit * PRICE_WEIGHT,
            "type":     self.type_fit * TYPE_WEIGHT,
            "amenity":  self.amenity_fit * AMENITY_WEIGHT,
        }

    @property
    def total(self) -> float:
        return _clamp(sum(self.contributions().values()), 0.0, 1.0)


def _rank_fit(rank: Optional[int]) -> float:
    if rank is None:
        return 0.0
    return max(MATCH_FLOOR, 1.0 - RANK_STEP * rank)


def price_fit(price: float, low: float, high: float) -> float:
    """Fit of ``price`` against the preferred range ``[low, high]``."""
    if low <= price <= high:
        return 1.0
    if price < low:
        gap = (low - price) / low if low > 0 else 1.0
    else:
        gap = (price - high) / high if high > 0 else 1.0
    return _clamp(1.0 - gap / PRICE_ZERO_GAP, 0.0, 1.0)


def compute_fit(prop: PropertyRecord, snapshot: PreferenceSnapshot) -> FitComponents:
    """Score ``prop`` against ``snapshot`` component by component."""
    # Location
    if snapshot.preferred_locations:
        loc_rank = next(
            (i for i, loc in enumerate(snapshot.preferred_locations) if prop.location.matches(loc)),
            None,
        )
        location = _rank_fit(loc_rank)
        matched_location = snapshot.preferred_locations[loc_rank] if loc_rank is not None else None
    else:
        location, matched_location = NEUTRAL_FIT, None

    # Type
    if snapshot.preferred_types:
        prop_type = prop.type.strip().lower()
        type_rank = next(
            (i for i, t in enumerate(snapshot.preferred_types) if t.strip().lower() == prop_type),
            None,
        )
        type_ = _rank_fit(type_rank)
        matched_type = snapshot.preferred_types[type_rank] if type_rank is not None else None
    else:
        type_, matched_type = NEUTRAL_FIT, None

    # Amenities
    if snapshot.preferred_amenities:
        matched = tuple(a for a in snapshot.preferred_amenities if prop.has_amenity(a))
        amenity = len(matched) / len(snapshot.preferred_amenities)
    else:
        amenity, matched = NEUTRAL_FIT, ()

    return FitComponents(
        location_fit=location,
        price_fit=price_fit(prop.price, snapshot.price_min, snapshot.price_max),
        type_fit=type_,
        amenity_fit=amenity,
        matched_location=matched_location,
        matched_type=matched_type,
        matched_amenities=matched,
    )


def compute_match_score(prop: PropertyRecord, snapshot: PreferenceSnapshot) -> float:
    return compute_fit(prop, snapshot).total


def build_reasons(prop: PropertyRecord, fit: FitComponents, max_reasons: int = 3) -> list[str]:
    """Short reason strings for the top contributing matched components.

    Neutral components (no preference recorded) never produce a reason.
    Ordered by weighted contribution, highest first.
    """
    candidates: list[tuple[float, str]] = []
    contrib = fit.contributions()

    if fit.matched_location:
        label = prop.location.label or fit.matched_location
        candidates.append((contrib["location"], f"Located in {label}, one of your preferred areas"))

    if fit.price_fit >= 1.0:
        candidates.append((contrib["price"], "Within your preferred price range"))
    elif fit.price_fit > 0.0:
        candidates.append((contrib["price"], "Close to your preferred price range"))

    if fit.matched_type:
        candidates.append((contrib["type"], f"Matches your interest in {prop.type.strip().lower()} properties"))

    if fit.matched_amenities:
        names = ", ".join(a.lower() for a in fit.matched_amenities)
        candidates.append((contrib["amenity"], f"Has amenities you like: {names}"))

    candidates.sort(key=lambda c: -c[0])
    return [text for _, text in candidates[:max_reasons]]


# ── Trend / popularity signal ─────────────────────────────────────────────────


@dataclass
class TrendComponents:
    """Trend score parts (each 0–1 before weighting)."""

    growth:     float
    popularity: float
    views:      int = 0

    @property
    def total(self) -> float:
        return _clamp(
            self.growth * TREND_GROWTH_WEIGHT + self.popularity * TREND_POPULARITY_WEIGHT,
            0.0,
            1.0,
        )


def compute_trend(
    prop: PropertyRecord,
    view_counts: Mapping[str, int],
    tables: Optional[MarketTables] = None,
) -> TrendComponents:
    """Popularity / trend signal for ``prop``.

    ``view_counts`` maps property id -> views across all users.
    """
    tables = tables or get_market_tables()
    growth = _clamp(tables.neighborhood_rate(prop.neighborhood) / tables.max_neighborhood_rate, 0.0, 1.0)
    max_views = max(view_counts.values(), default=0)
    views = view_counts.get(prop.id, 0)
    popularity = views / max_views if max_views > 0 else 0.0
    return TrendComponents(growth=growth, popularity=popularity, views=views)


def build_trend_reasons(
    prop: PropertyRecord,
    trend: TrendComponents,
    tables: Optional[MarketTables] = None,
) -> list[str]:
    tables = tables or get_market_tables()
    reasons: list[str] = []
    if tables.is_known_neighborhood(prop.neighborhood):
        rate = tables.neighborhood_rate(prop.neighborhood)
        reasons.append(f"{prop.neighborhood} is growing {rate:.1f}% per year")
    if trend.views > 0:
        reasons.append(f"Viewed {trend.views} time{'s' if trend.views != 1 else ''} recently")
    return reasons or ["Popular in the current market"]


def _clamp(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` to ``[lo, hi]``."""
    return max(lo, min(hi, value))
