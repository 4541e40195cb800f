"""
Tests for property_insights/recommendations/state.py.

What we test
------------
RecommendationLists:
  - Unapplied lists are None and absent from resolved().
  - A result with an older sequence number than the applied one is dropped.
  - Sequence numbers are independent of which list they belong to, and
    applying one list never touches another.
  - find() / update_where() see every list.
  - clear() forgets items but keeps ordering guarantees.
"""

from __future__ import annotations

from property_insights.recommendations.ranker import ScoredProperty, to_recommendations
from property_insights.recommendations.state import RecommendationLists
from property_insights.taxonomy.tiers import RecommendationSource

P = RecommendationSource.PERSONALIZED
T = RecommendationSource.TRENDING


def _recs(props):
    return to_recommendations([ScoredProperty(p, 0.8) for p in props], "u1")


class TestRecommendationLists:
    def test_unresolved_by_default(self):
        lists = RecommendationLists()
        assert lists.get(P) is None
        assert lists.resolved() == {}

    def test_stale_result_dropped(self, catalog):
        lists = RecommendationLists()
        old_seq = lists.begin(P)
        new_seq = lists.begin(P)
        newer = _recs(catalog[:2])
        assert lists.apply(P, new_seq, newer) is True
        assert lists.apply(P, old_seq, _recs(catalog[2:])) is False
        assert [r.property_id for r in lists.get(P)] == ["p-1", "p-2"]

    def test_in_order_results_applied(self, catalog):
        lists = RecommendationLists()
        first = lists.begin(P)
        assert lists.apply(P, first, _recs(catalog[:1]))
        second = lists.begin(P)
        assert lists.apply(P, second, _recs(catalog[1:2]))
        assert [r.property_id for r in lists.get(P)] == ["p-2"]

    def test_lists_do_not_interfere(self, catalog):
        lists = RecommendationLists()
        p_seq = lists.begin(P)
        t_seq = lists.begin(T)
        assert lists.apply(T, t_seq, _recs(catalog[3:4]))
        assert lists.apply(P, p_seq, _recs(catalog[:1]))
        assert set(lists.resolved()) == {P, T}

    def test_empty_list_is_resolved(self):
        lists = RecommendationLists()
        lists.apply(T, lists.begin(T), [])
        assert lists.resolved() == {T: []}

    def test_find_and_update_where(self, catalog):
        lists = RecommendationLists()
        recs = _recs(catalog[:2])
        lists.apply(P, lists.begin(P), recs)
        target = recs[1].id
        assert lists.find(target).property_id == "p-2"
        assert lists.find("rec_missing") is None
        changed = lists.update_where(
            lambda r: r.id == target,
            lambda r: r.model_copy(update={"is_viewed": True}),
        )
        assert changed == 1
        assert lists.find(target).is_viewed

    def test_get_returns_copy(self, catalog):
        lists = RecommendationLists()
        lists.apply(P, lists.begin(P), _recs(catalog[:2]))
        lists.get(P).clear()
        assert len(lists.get(P)) == 2

    def test_clear_keeps_sequence(self, catalog):
        lists = RecommendationLists()
        stale = lists.begin(P)
        lists.apply(P, lists.begin(P), _recs(catalog[:1]))
        lists.clear()
        assert lists.get(P) is None
        assert lists.apply(P, stale, _recs(catalog[1:2])) is False
