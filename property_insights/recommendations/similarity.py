"""
Property-to-property similarity.

Score (each component in [0, 1] before weighting)::

    similarity = 0.4 * same_city
               + 0.3 * (1 - min(|price - ref_price| / ref_price, 1))
               + 0.2 * same_type
               + 0.1 * overlap(amenities) / len(ref.amenities)

City and type comparisons are case-insensitive.  A reference without
amenities contributes nothing for the amenity component.  "Similar price
range" needs a price component above 0.15 and "Similar amenities" an
amenity component above 0.05.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from property_insights.models.property import PropertyRecord

CITY_WEIGHT = 0.4
PRICE_WEIGHT = 0.3
TYPE_WEIGHT = 0.2
AMENITY_WEIGHT = 0.1

# A reason is listed only when its weighted component exceeds these floors.
PRICE_REASON_FLOOR = 0.15    # relative price gap under 50%
AMENITY_REASON_FLOOR = 0.05  # more than half of the reference amenities


@dataclass
class SimilarityComponents:
    """Weighted similarity contributions for one candidate."""

    city: float = 0.0
    price: float = 0.0
    type: float = 0.0
    amenity: float = 0.0
    reasons: list[str] = field(default_factory=list)

    @property
    def total(self) -> float:
        return self.city + self.price + self.type + self.amenity


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


def compute_similarity(reference: PropertyRecord, candidate: PropertyRecord) -> SimilarityComponents:
    """Score how similar ``candidate`` is to ``reference``."""
    out = SimilarityComponents()

    ref_city = _norm(reference.location.city)
    if ref_city and ref_city == _norm(candidate.location.city):
        out.city = CITY_WEIGHT
        out.reasons.append("Similar location")

    if reference.price and reference.price > 0:
        gap = abs(candidate.price - reference.price) / reference.price
        out.price = PRICE_WEIGHT * (1 - min(gap, 1.0))
        if out.price > PRICE_REASON_FLOOR:
            out.reasons.append("Similar price range")

    if _norm(reference.type) and _norm(reference.type) == _norm(candidate.type):
        out.type = TYPE_WEIGHT
        out.reasons.append("Same property type")

    ref_amenities = {_norm(a) for a in reference.amenities if _norm(a)}
    if ref_amenities:
        overlap = ref_amenities & {_norm(a) for a in candidate.amenities}
        out.amenity = AMENITY_WEIGHT * len(overlap) / len(ref_amenities)
        if out.amenity > AMENITY_REASON_FLOOR:
            out.reasons.append("Similar amenities")

    return out


def find_similar(
    reference: PropertyRecord,
    catalog: Iterable[PropertyRecord],
    limit: int = 3,
) -> list[tuple[PropertyRecord, SimilarityComponents]]:
    """Return the ``limit`` catalog entries most similar to ``reference``.

    The reference itself is never included.  Ties keep catalog order.
    """
    scored = [
        (candidate, compute_similarity(reference, candidate))
        for candidate in catalog
        if candidate.id != reference.id
    ]
    scored.sort(key=lambda pair: -pair[1].total)
    return scored[:limit]
