"""
Tests for property_insights/personalization/store.py.

What we test
------------
InMemoryBehaviorStore:
  - Unknown users get a fresh default profile.
  - update() results are visible to later get() calls; get() returns copies.
  - Concurrent updates from many threads never lose entries.
  - reset() replaces the profile; view_counts() aggregates across users.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from property_insights.models.behavior import ViewedProperty
from property_insights.personalization.profile import ProfileBuilder
from property_insights.personalization.store import InMemoryBehaviorStore


def _view(property_id: str) -> ViewedProperty:
    return ViewedProperty(property_id=property_id, timestamp=datetime.now(tz=timezone.utc))


class TestInMemoryBehaviorStore:
    def test_unknown_user_gets_default(self):
        profile = InMemoryBehaviorStore().get("new")
        assert profile.user_id == "new"
        assert profile.search_history == []

    def test_update_returns_fn_result(self):
        store = InMemoryBehaviorStore()
        assert store.update("u1", lambda p: p.user_id) == "u1"

    def test_update_visible_and_get_is_copy(self):
        store = InMemoryBehaviorStore()
        store.update("u1", lambda p: p.viewed_properties.append(_view("p-1")))
        copy = store.get("u1")
        copy.viewed_properties.clear()
        assert len(store.get("u1").viewed_properties) == 1

    def test_reset(self):
        store = InMemoryBehaviorStore()
        store.update("u1", lambda p: p.viewed_properties.append(_view("p-1")))
        store.reset("u1")
        assert store.get("u1").viewed_properties == []

    def test_view_counts_across_users(self):
        store = InMemoryBehaviorStore()
        store.update("u1", lambda p: p.viewed_properties.extend([_view("p-1"), _view("p-2")]))
        store.update("u2", lambda p: p.viewed_properties.append(_view("p-1")))
        assert store.view_counts() == {"p-1": 2, "p-2": 1}


class TestConcurrentTracking:
    def test_no_lost_searches(self):
        builder = ProfileBuilder()
        n_threads, per_thread = 8, 5

        def worker(idx: int) -> None:
            for j in range(per_thread):
                builder.track_search("u1", f"t{idx}-q{j}")

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        history = builder.get_profile("u1").search_history
        assert len(history) == n_threads * per_thread
        assert len({item.query for item in history}) == n_threads * per_thread
