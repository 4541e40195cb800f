"""
Tests for property_insights/recommendations/ranker.py.

What we test
------------
select_ranked():
  - Threshold is inclusive: 0.7 kept, 0.69 dropped at min_match_score 0.7.
  - None disables the threshold; sorted best first; ties keep input order.

rank_personalized():
  - Only properties at or above the threshold; limit respected.
  - Records with price <= 0 are excluded with a WARNING.

rank_new_listings():
  - Only listings created strictly after the cutoff.

rank_trending():
  - Never threshold-filtered; ordered by trend score.

merge_all_recommendations():
  - One entry per property, attributed to the highest-precedence list
    regardless of score; missing lists skipped; cap applied.

to_recommendations():
  - rec_ ids are unique; fields copied from the scored entries.

check_property_interest():
  - Interested at or above the threshold; invalid price raises.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from property_insights.errors import InputValidationError
from property_insights.models.behavior import PreferenceSnapshot
from property_insights.recommendations.ranker import (
    ScoredProperty,
    check_property_interest,
    find_similar_properties,
    merge_all_recommendations,
    rank_new_listings,
    rank_personalized,
    rank_trending,
    select_ranked,
    to_recommendations,
)
from property_insights.taxonomy.tiers import RecommendationSource

SNAPSHOT = PreferenceSnapshot(
    price_min=100_000,
    price_max=1_000_000,
    preferred_types=("house",),
    preferred_locations=("Downtown",),
    preferred_amenities=("Pool",),
)


def _ids(items) -> list[str]:
    return [s.property.id for s in items]


class TestSelectRanked:
    def test_threshold_inclusive(self, make_property):
        scored = [
            ScoredProperty(make_property(id="low"), 0.69),
            ScoredProperty(make_property(id="edge"), 0.7),
        ]
        assert _ids(select_ranked(scored, 0.7)) == ["edge"]

    def test_no_threshold_sorted_stable(self, make_property):
        scored = [
            ScoredProperty(make_property(id="a"), 0.2),
            ScoredProperty(make_property(id="b"), 0.9),
            ScoredProperty(make_property(id="c"), 0.2),
        ]
        assert _ids(select_ranked(scored, None)) == ["b", "a", "c"]

    def test_limit(self, make_property):
        scored = [ScoredProperty(make_property(id=str(i)), 0.9) for i in range(6)]
        assert len(select_ranked(scored, 0.5, limit=4)) == 4


class TestRankPersonalized:
    def test_threshold_applied(self, catalog):
        ranked = rank_personalized(catalog, SNAPSHOT, min_match_score=0.7)
        assert _ids(ranked) == ["p-1", "p-2", "p-5"]
        assert all(s.score >= 0.7 for s in ranked)
        assert all(s.source == RecommendationSource.PERSONALIZED for s in ranked)

    def test_lower_threshold_admits_more(self, catalog):
        ranked = rank_personalized(catalog, SNAPSHOT, min_match_score=0.3)
        assert _ids(ranked) == ["p-1", "p-2", "p-5", "p-4", "p-3"]

    def test_limit(self, catalog):
        assert len(rank_personalized(catalog, SNAPSHOT, 0.0, limit=2)) == 2

    def test_invalid_price_excluded(self, catalog, make_property, caplog):
        bad = make_property(id="bad", price=0)
        with caplog.at_level(logging.WARNING, logger="property_insights.recommendations.ranker"):
            ranked = rank_personalized([bad, *catalog], SNAPSHOT, min_match_score=0.0)
        assert "bad" not in _ids(ranked)
        assert "bad" in caplog.text


class TestRankNewListings:
    def test_only_after_cutoff(self, catalog, fixed_now):
        ranked = rank_new_listings(catalog, SNAPSHOT, 0.7, cutoff=fixed_now - timedelta(days=30))
        assert _ids(ranked) == ["p-5"]
        assert ranked[0].source == RecommendationSource.NEW_LISTING

    def test_cutoff_is_exclusive(self, catalog, fixed_now):
        cutoff = catalog[4].created_at
        assert rank_new_listings(catalog, SNAPSHOT, 0.0, cutoff=cutoff) == []

    def test_threshold_still_applies(self, make_property, fixed_now):
        fresh_condo = make_property(id="c", type="condo", neighborhood="Westside",
                                    created_at=fixed_now)
        ranked = rank_new_listings([fresh_condo], SNAPSHOT, 0.7,
                                   cutoff=fixed_now - timedelta(days=1))
        assert ranked == []


class TestRankTrending:
    def test_order_and_no_threshold(self, catalog):
        ranked = rank_trending(catalog, {"p-3": 4, "p-1": 2})
        assert _ids(ranked) == ["p-3", "p-1", "p-4", "p-2", "p-5"]
        assert min(s.score for s in ranked) < 0.7
        assert all(s.source == RecommendationSource.TRENDING for s in ranked)

    def test_limit(self, catalog):
        assert len(rank_trending(catalog, {}, limit=2)) == 2


class TestFindSimilarProperties:
    def test_reference_excluded_and_attributed(self, catalog):
        similar = find_similar_properties(catalog[0], catalog, limit=3)
        assert "p-1" not in _ids(similar)
        assert len(similar) == 3
        assert all(s.reference_property_id == "p-1" for s in similar)
        assert all(0.0 <= s.score <= 1.0 for s in similar)
        assert "Same property type" in similar[0].reasons


class TestMerge:
    def _rec(self, prop, score, source):
        return to_recommendations([ScoredProperty(prop, score, source=source)], "u1")[0]

    def test_dedup_by_precedence(self, catalog):
        personalized = [self._rec(catalog[0], 0.5, RecommendationSource.PERSONALIZED)]
        trending = [
            self._rec(catalog[0], 0.9, RecommendationSource.TRENDING),
            self._rec(catalog[3], 0.8, RecommendationSource.TRENDING),
        ]
        merged = merge_all_recommendations({
            RecommendationSource.TRENDING: trending,
            RecommendationSource.PERSONALIZED: personalized,
        })
        assert [r.property_id for r in merged] == ["p-1", "p-4"]
        assert merged[0].source == RecommendationSource.PERSONALIZED
        assert merged[0].match_score == 0.5

    def test_new_listing_before_trending(self, catalog):
        merged = merge_all_recommendations({
            RecommendationSource.TRENDING: [self._rec(catalog[4], 0.4, RecommendationSource.TRENDING)],
            RecommendationSource.NEW_LISTING: [self._rec(catalog[4], 0.9, RecommendationSource.NEW_LISTING)],
        })
        assert [r.source for r in merged] == [RecommendationSource.NEW_LISTING]

    def test_similar_list_not_merged(self, catalog):
        merged = merge_all_recommendations({
            RecommendationSource.SIMILAR_PROPERTY: [
                self._rec(catalog[1], 0.9, RecommendationSource.SIMILAR_PROPERTY)
            ],
        })
        assert merged == []

    def test_cap(self, catalog):
        trending = [self._rec(p, 0.5, RecommendationSource.TRENDING) for p in catalog]
        assert len(merge_all_recommendations({RecommendationSource.TRENDING: trending}, cap=2)) == 2


class TestToRecommendations:
    def test_fields(self, catalog, fixed_now):
        scored = [ScoredProperty(p, 0.8, ["r"]) for p in catalog[:3]]
        recs = to_recommendations(scored, "u1", now=fixed_now)
        assert len({r.id for r in recs}) == 3
        assert all(r.id.startswith("rec_") for r in recs)
        assert all(r.created_at == fixed_now and not r.is_viewed for r in recs)
        assert recs[0].reasons == ("r",)
        assert recs[0].property_id == "p-1"


class TestCheckPropertyInterest:
    def test_interested(self, catalog):
        check = check_property_interest(catalog[0], SNAPSHOT, 0.7)
        assert check.is_interested
        assert check.score == pytest.approx(1.0)
        assert len(check.reasons) == 3

    def test_not_interested(self, catalog):
        check = check_property_interest(catalog[2], SNAPSHOT, 0.7)
        assert not check.is_interested

    def test_invalid_price_raises(self, make_property):
        with pytest.raises(InputValidationError):
            check_property_interest(make_property(price=-5), SNAPSHOT, 0.7)
