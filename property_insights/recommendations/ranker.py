"""
Recommendation ranker: scores a catalog against a preference snapshot,
applies list-specific filters and limits, and builds ``Recommendation``
records.

Usage flow
----------
1. score_catalog(catalog, snapshot)
   -> list[ScoredProperty]  (one per valid property)

2. select_ranked(scored, min_match_score, limit)
   -> list[ScoredProperty]  (threshold applied, best first)

3. to_recommendations(selected, user_id)
   -> list[Recommendation]

List rules
----------
Personalized : match_score >= min_match_score.
New listings : same threshold; only properties created after the cutoff.
Trending     : ranked by trend score only; never threshold-filtered.
Similar      : ranked by similarity to a reference property.
All          : Personalized, New listings, Trending merged in that
               precedence; one entry per property id (first wins); capped
               at ``max_recommendations_per_day``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence
from uuid import uuid4

from property_insights.analysis.valuation import validate_property
from property_insights.errors import InputValidationError
from property_insights.models.behavior import PreferenceSnapshot
from property_insights.models.property import PropertyRecord
from property_insights.models.recommendation import Recommendation
from property_insights.recommendations.scorer import (
    build_reasons,
    build_trend_reasons,
    compute_fit,
    compute_trend,
)
from property_insights.recommendations.similarity import find_similar
from property_insights.taxonomy.market_tables import MarketTables
from property_insights.taxonomy.tiers import SOURCE_PRECEDENCE, RecommendationSource
from property_insights.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

# Lists merged into the "All Recommendations" view, in precedence order.
MERGED_SOURCES: tuple[RecommendationSource, ...] = tuple(
    sorted(
        (
            RecommendationSource.PERSONALIZED,
            RecommendationSource.NEW_LISTING,
            RecommendationSource.TRENDING,
        ),
        key=SOURCE_PRECEDENCE.__getitem__,
    )
)


@dataclass
class ScoredProperty:
    """A property with its list score and reasons.

    Attributes:
        property:  The candidate listing.
        score:     Match, trend or similarity score in [0, 1].
        reasons:   Short reason strings, most important first.
        source:    List the score was computed for.
        reference_property_id: Anchor of a similar-property score.
    """

    property: PropertyRecord
    score:    float
    reasons:  list[str] = field(default_factory=list)
    source:   RecommendationSource = RecommendationSource.PERSONALIZED
    reference_property_id: Optional[str] = None


@dataclass(frozen=True)
class InterestCheck:
    """Result of ``check_property_interest``."""

    is_interested: bool
    score: float
    reasons: tuple[str, ...]


def _valid(catalog: Iterable[PropertyRecord]) -> list[PropertyRecord]:
    """Drop records that cannot be scored; each exclusion is logged."""
    out: list[PropertyRecord] = []
    for prop in catalog:
        try:
            validate_property(prop)
        except InputValidationError as exc:
            logger.warning("Scoring excluded property | property_id=%s | %s", prop.id, exc)
            continue
        out.append(prop)
    return out


def score_catalog(
    catalog: Iterable[PropertyRecord],
    snapshot: PreferenceSnapshot,
    source: RecommendationSource = RecommendationSource.PERSONALIZED,
    max_reasons: int = 3,
) -> list[ScoredProperty]:
    """Score every valid property against ``snapshot``."""
    scored: list[ScoredProperty] = []
    for prop in _valid(catalog):
        fit = compute_fit(prop, snapshot)
        scored.append(
            ScoredProperty(
                property=prop,
                score=fit.total,
                reasons=build_reasons(prop, fit, max_reasons),
                source=source,
            )
        )
    return scored


def select_ranked(
    scored: Sequence[ScoredProperty],
    min_match_score: Optional[float],
    limit: Optional[int] = None,
) -> list[ScoredProperty]:
    """Apply the threshold (when given), sort best first, truncate.

    ``min_match_score=None`` disables the threshold.  Ties keep input order.
    """
    kept = [s for s in scored if min_match_score is None or s.score >= min_match_score]
    kept.sort(key=lambda s: -s.score)
    return kept if limit is None else kept[:limit]


def rank_personalized(
    catalog: Iterable[PropertyRecord],
    snapshot: PreferenceSnapshot,
    min_match_score: float,
    limit: int = 5,
    max_reasons: int = 3,
) -> list[ScoredProperty]:
    scored = score_catalog(catalog, snapshot, RecommendationSource.PERSONALIZED, max_reasons)
    return select_ranked(scored, min_match_score, limit)


def rank_new_listings(
    catalog: Iterable[PropertyRecord],
    snapshot: PreferenceSnapshot,
    min_match_score: float,
    cutoff: datetime,
    limit: int = 3,
    max_reasons: int = 3,
) -> list[ScoredProperty]:
    """Like ``rank_personalized`` but only for listings created after ``cutoff``.

    Listings without ``created_at`` are never new.
    """
    cutoff = ensure_utc(cutoff)
    fresh = [p for p in catalog if p.created_at is not None and p.created_at > cutoff]
    scored = score_catalog(fresh, snapshot, RecommendationSource.NEW_LISTING, max_reasons)
    return select_ranked(scored, min_match_score, limit)


def rank_trending(
    catalog: Iterable[PropertyRecord],
    view_counts: Mapping[str, int],
    limit: int = 5,
    tables: Optional[MarketTables] = None,
) -> list[ScoredProperty]:
    """Rank by trend score; no personal fit and no threshold."""
    scored: list[ScoredProperty] = []
    for prop in _valid(catalog):
        trend = compute_trend(prop, view_counts, tables)
        scored.append(
            ScoredProperty(
                property=prop,
                score=trend.total,
                reasons=build_trend_reasons(prop, trend, tables),
                source=RecommendationSource.TRENDING,
            )
        )
    return select_ranked(scored, None, limit)


def find_similar_properties(
    reference: PropertyRecord,
    catalog: Iterable[PropertyRecord],
    limit: int = 3,
) -> list[ScoredProperty]:
    """Properties most similar to ``reference``, best first."""
    return [
        ScoredProperty(
            property=candidate,
            score=min(1.0, components.total),
            reasons=components.reasons,
            source=RecommendationSource.SIMILAR_PROPERTY,
            reference_property_id=reference.id,
        )
        for candidate, components in find_similar(reference, _valid(catalog), limit)
    ]


def check_property_interest(
    prop: PropertyRecord,
    snapshot: PreferenceSnapshot,
    min_match_score: float,
    max_reasons: int = 3,
) -> InterestCheck:
    """Would this user be interested in ``prop``?

    Raises:
        InputValidationError: If ``prop`` cannot be scored.
    """
    validate_property(prop)
    fit = compute_fit(prop, snapshot)
    score = fit.total
    return InterestCheck(
        is_interested=score >= min_match_score,
        score=score,
        reasons=tuple(build_reasons(prop, fit, max_reasons)),
    )


def to_recommendations(
    selected: Sequence[ScoredProperty],
    user_id: str,
    now: Optional[datetime] = None,
) -> list[Recommendation]:
    created_at = ensure_utc(now) if now is not None else utcnow()
    return [
        Recommendation(
            id=f"rec_{uuid4().hex[:12]}",
            user_id=user_id,
            property=s.property,
            match_score=s.score,
            reasons=tuple(s.reasons),
            source=s.source,
            created_at=created_at,
            reference_property_id=s.reference_property_id,
        )
        for s in selected
    ]


def merge_all_recommendations(
    lists: Mapping[RecommendationSource, Sequence[Recommendation]],
    cap: Optional[int] = None,
) -> list[Recommendation]:
    """Merge resolved lists into the "All Recommendations" view.

    Missing lists are skipped.  Each property id appears once, attributed to
    the highest-precedence list containing it.  Order: precedence, then the
    order within each list.
    """
    seen: set[str] = set()
    merged: list[Recommendation] = []
    for source in MERGED_SOURCES:
        for rec in lists.get(source, ()):
            if rec.property_id in seen:
                continue
            seen.add(rec.property_id)
            merged.append(rec)
    return merged if cap is None else merged[:cap]
