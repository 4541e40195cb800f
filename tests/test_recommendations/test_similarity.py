"""
Tests for property_insights/recommendations/similarity.py.

What we test
------------
compute_similarity():
  - Identical listing (different id) scores 1.0 with all four reasons.
  - Price component decays with the relative gap and bottoms out at 0.
  - "Similar price range" only below a 50% gap; "Similar amenities" only
    when more than half of the reference amenities are shared.
  - Reference without amenities contributes no amenity score.

find_similar():
  - Reference excluded; sorted by score; limit respected.
"""

from __future__ import annotations

import pytest

from property_insights.recommendations.similarity import compute_similarity, find_similar


class TestComputeSimilarity:
    def test_identical_listing(self, make_property):
        ref = make_property(id="a", amenities=("Pool",))
        twin = make_property(id="b", amenities=("Pool",))
        sim = compute_similarity(ref, twin)
        assert sim.total == pytest.approx(1.0)
        assert sim.reasons == [
            "Similar location", "Similar price range", "Same property type", "Similar amenities",
        ]

    def test_price_gap(self, make_property):
        ref = make_property(id="a", price=400_000)
        sim = compute_similarity(ref, make_property(id="b", price=500_000))
        assert sim.price == pytest.approx(0.3 * 0.75)
        assert "Similar price range" in sim.reasons

    def test_price_reason_needs_gap_under_half(self, make_property):
        ref = make_property(id="a", price=400_000)
        sim = compute_similarity(ref, make_property(id="b", price=600_000))
        assert sim.price == pytest.approx(0.15)
        assert "Similar price range" not in sim.reasons

    def test_price_gap_floor(self, make_property):
        ref = make_property(id="a", price=100_000)
        assert compute_similarity(ref, make_property(id="b", price=900_000)).price == 0.0

    def test_city_and_type_case_insensitive(self, make_property):
        ref = make_property(id="a", city="Springfield", type="House")
        sim = compute_similarity(ref, make_property(id="b", city="SPRINGFIELD", type="house"))
        assert sim.city == pytest.approx(0.4)
        assert sim.type == pytest.approx(0.2)

    def test_partial_amenity_overlap(self, make_property):
        ref = make_property(id="a", amenities=("Pool", "Gym"))
        sim = compute_similarity(ref, make_property(id="b", amenities=("gym",)))
        assert sim.amenity == pytest.approx(0.05)
        assert "Similar amenities" not in sim.reasons

    def test_majority_amenity_overlap(self, make_property):
        ref = make_property(id="a", amenities=("Pool", "Gym", "Garden"))
        sim = compute_similarity(ref, make_property(id="b", amenities=("gym", "pool")))
        assert sim.amenity == pytest.approx(0.1 * 2 / 3)
        assert "Similar amenities" in sim.reasons

    def test_reference_without_amenities(self, make_property):
        sim = compute_similarity(make_property(id="a"), make_property(id="b", amenities=("Pool",)))
        assert sim.amenity == 0.0
        assert "Similar amenities" not in sim.reasons


class TestFindSimilar:
    def test_excludes_reference_and_sorts(self, catalog):
        similar = find_similar(catalog[0], catalog, limit=4)
        ids = [prop.id for prop, _ in similar]
        assert "p-1" not in ids
        totals = [c.total for _, c in similar]
        assert totals == sorted(totals, reverse=True)
        assert ids[0] == "p-5"

    def test_limit(self, catalog):
        assert len(find_similar(catalog[0], catalog, limit=2)) == 2

    def test_empty_catalog(self, downtown_house):
        assert find_similar(downtown_house, []) == []
