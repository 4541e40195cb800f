"""
Explanation generator: factor breakdown and prose for one recommendation.

Factors (score 0–5 = component fit * 5)
---------------------------------------
    location    always      preferred-location fit, or neighborhood growth
                            relative to the fastest-growing neighborhood when
                            the user has no location preference
    price       always      price-range fit
    features    always      amenity fit
    preference  when the user has preferred property types
    trend       when the neighborhood is in the growth table

So every explanation carries 3 to 5 factors.

Prose
-----
With an ``ExplanationTextClient`` configured, the summary and conclusion come
from the external service (one attempt).  Any ``ExternalServiceError``
is logged and turned into ``NO_EXPLANATION``; the recommendation flow never
sees the error.  Without a client, template sentences are used.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from property_insights.clients.explanation import ExplanationTextClient
from property_insights.errors import ExternalServiceError
from property_insights.models.behavior import PreferenceSnapshot
from property_insights.models.recommendation import (
    NO_EXPLANATION,
    ExplanationFactor,
    Recommendation,
    RecommendationExplanation,
)
from property_insights.recommendations.scorer import compute_fit
from property_insights.taxonomy.market_tables import MarketTables, get_market_tables
from property_insights.taxonomy.tiers import ExplanationCategory, RecommendationSource

logger = logging.getLogger(__name__)

FACTOR_SCALE = 5.0


def _score(fit: float) -> float:
    return round(max(0.0, min(1.0, fit)) * FACTOR_SCALE, 1)


def build_factors(
    rec: Recommendation,
    snapshot: PreferenceSnapshot,
    tables: Optional[MarketTables] = None,
) -> list[ExplanationFactor]:
    """Rule-based factor breakdown for ``rec``."""
    tables = tables or get_market_tables()
    prop = rec.property
    fit = compute_fit(prop, snapshot)
    place = prop.location.label or "this area"
    factors: list[ExplanationFactor] = []

    if snapshot.preferred_locations:
        loc_desc = (
            f"{place} matches your preferred area {fit.matched_location}."
            if fit.matched_location
            else f"{place} is outside the areas you usually look at."
        )
        loc_score = fit.location_fit
    else:
        rate = tables.neighborhood_rate(prop.neighborhood)
        loc_desc = f"{place} has an expected annual growth of {rate:.1f}%."
        loc_score = rate / tables.max_neighborhood_rate
    factors.append(ExplanationFactor(
        category=ExplanationCategory.LOCATION, title="Location",
        description=loc_desc, score=_score(loc_score),
    ))

    if fit.price_fit >= 1.0:
        price_desc = f"${prop.price:,.0f} is within your range of ${snapshot.price_min:,.0f} to ${snapshot.price_max:,.0f}."
    else:
        price_desc = f"${prop.price:,.0f} is outside your range of ${snapshot.price_min:,.0f} to ${snapshot.price_max:,.0f}."
    factors.append(ExplanationFactor(
        category=ExplanationCategory.PRICE, title="Price & value",
        description=price_desc, score=_score(fit.price_fit),
    ))

    if fit.matched_amenities:
        feat_desc = "Includes " + ", ".join(a.lower() for a in fit.matched_amenities) + "."
    elif prop.amenities:
        feat_desc = f"Offers {len(prop.amenities)} amenities, none of them on your usual list."
    else:
        feat_desc = "No amenities listed."
    factors.append(ExplanationFactor(
        category=ExplanationCategory.FEATURES, title="Features & amenities",
        description=feat_desc, score=_score(fit.amenity_fit),
    ))

    if snapshot.preferred_types:
        pref_desc = (
            f"You often look at {fit.matched_type.lower()} properties."
            if fit.matched_type
            else f"You usually look at {', '.join(t.lower() for t in snapshot.preferred_types)} properties."
        )
        factors.append(ExplanationFactor(
            category=ExplanationCategory.PREFERENCE, title="Preference match",
            description=pref_desc, score=_score(fit.type_fit),
        ))

    if tables.is_known_neighborhood(prop.neighborhood):
        rate = tables.neighborhood_rate(prop.neighborhood)
        factors.append(ExplanationFactor(
            category=ExplanationCategory.TREND, title="Market trend",
            description=f"{prop.neighborhood} prices are rising about {rate:.1f}% per year.",
            score=_score(rate / tables.max_neighborhood_rate),
        ))

    return factors


def _template_summary(rec: Recommendation) -> str:
    name = rec.property.title or "This property"
    pct = round(rec.match_score * 100)
    if rec.source == RecommendationSource.TRENDING:
        return f"{name} is trending, with a popularity score of {pct}%."
    if rec.source == RecommendationSource.SIMILAR_PROPERTY:
        return f"{name} is {pct}% similar to a property you viewed."
    return f"{name} is a {pct}% match for your preferences."


def _template_conclusion(rec: Recommendation) -> str:
    if rec.match_score >= 0.8:
        return "A strong candidate worth a closer look."
    if rec.match_score >= 0.6:
        return "A good option with a few trade-offs."
    return "A partial match; compare it against your priorities."


class ExplanationGenerator:
    """Builds ``RecommendationExplanation`` objects on demand.

    Args:
        client: Optional external text service for summary and conclusion.
        tables: Lookup tables (default: the process-wide instance).
    """

    def __init__(
        self,
        client: Optional[ExplanationTextClient] = None,
        tables: Optional[MarketTables] = None,
    ) -> None:
        self.client = client
        self.tables = tables or get_market_tables()

    async def generate(
        self,
        rec: Recommendation,
        snapshot: PreferenceSnapshot,
    ) -> RecommendationExplanation:
        """Explain ``rec``.  Client failures yield ``NO_EXPLANATION``; never raises."""
        factors = build_factors(rec, snapshot, self.tables)

        if self.client is None:
            return RecommendationExplanation(
                summary=_template_summary(rec),
                factors=tuple(factors),
                conclusion=_template_conclusion(rec),
            )

        request: dict[str, Any] = {
            "property": rec.property.model_dump(mode="json", by_alias=True),
            "match_score": rec.match_score,
            "source": rec.source.value,
            "factors": [f.model_dump(mode="json") for f in factors],
        }
        try:
            text = await self.client.generate(request)
        except ExternalServiceError as exc:
            logger.warning(
                "Explanation unavailable | rec_id=%s | property_id=%s | %s",
                rec.id, rec.property_id, exc,
            )
            return NO_EXPLANATION
        except Exception as exc:
            logger.warning(
                "Explanation client failed | rec_id=%s | property_id=%s | %s: %s",
                rec.id, rec.property_id, type(exc).__name__, exc,
            )
            return NO_EXPLANATION

        summary = text.get("summary") if isinstance(text, dict) else None
        if not summary:
            logger.warning(
                "Explanation reply has no summary | rec_id=%s | property_id=%s",
                rec.id, rec.property_id,
            )
            return NO_EXPLANATION

        return RecommendationExplanation(
            summary=summary,
            factors=tuple(factors),
            conclusion=text.get("conclusion") or "",
        )
