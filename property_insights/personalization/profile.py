"""
Personalization profile builder.

Turns raw behavior events into a per-user ``BehaviorProfile`` and derives
read-side views from it.

Write paths (each one atomic per call through ``BehaviorStore.update``)
-----------------------------------------------------------------------
``track_search``         prepend query; cap at ``max_search_history``.
``track_property_view``  prepend view; cap at ``max_viewed_properties``;
                         bump type / location / amenity counts of the viewed
                         property (weight 2 when dwell >= ``long_view_seconds``,
                         else 1).
``track_filters``        prepend filter set; cap at ``max_filter_sets``; bump
                         type / location / amenity counts (weight 1) and fold
                         the price range into a bucket.

Each write is mirrored to the telemetry sink, fire-and-forget.

Price-range buckets
-------------------
A new range joins an existing bucket when both bounds are within
``price_range_similarity`` (relative to the bucket's bounds); the bucket's
bounds then drift toward the new range by ``price_range_drift`` and its count
increments.  Otherwise a new bucket starts.  Buckets are kept ordered by
count, highest first; the top bucket is the preferred price range.

Preferences
-----------
A type / location / amenity becomes a preference once its weighted count
exceeds 1 (a single casual view is not a preference).  Ranked most-frequent
first; top 3 types, top 3 locations, top 5 amenities.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from property_insights.clients.telemetry import TelemetryDispatcher
from property_insights.config import PersonalizationConfig
from property_insights.models.behavior import (
    AppliedFilters,
    BehaviorProfile,
    FilterSet,
    PreferenceSnapshot,
    PriceRangePreference,
    SearchHistoryItem,
    UIAdaptations,
    ViewedProperty,
    rank_counts,
)
from property_insights.models.property import PropertyRecord
from property_insights.personalization.store import BehaviorStore, InMemoryBehaviorStore
from property_insights.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

PREFERENCE_MIN_COUNT = 1.0    # strictly greater than this to count as a preference
TOP_TYPES = 3
TOP_LOCATIONS = 3
TOP_AMENITIES = 5


def _bump(counts: dict[str, float], key: Optional[str], weight: float) -> None:
    """Add ``weight`` to ``key``, matching existing keys case-insensitively."""
    if not key or not key.strip():
        return
    key = key.strip()
    wanted = key.lower()
    for existing in counts:
        if existing.lower() == wanted:
            counts[existing] += weight
            return
    counts[key] = weight


def _relative_gap(a: float, b: float) -> float:
    """|a - b| relative to the larger of the two; equal values give 0."""
    larger = max(a, b)
    if larger <= 0:
        return 0.0 if a == b else 1.0
    return abs(a - b) / larger


def _preferred(counts: dict[str, float], limit: int) -> tuple[str, ...]:
    eligible = {k: v for k, v in counts.items() if v > PREFERENCE_MIN_COUNT}
    return rank_counts(eligible, limit)


class ProfileBuilder:
    """Aggregates behavior events into profiles and derived preferences.

    Args:
        store:      Profile storage (default: a fresh in-memory store).
        telemetry:  Fire-and-forget mirror of write events.
        config:     Retention caps and derivation parameters.
    """

    def __init__(
        self,
        store: Optional[BehaviorStore] = None,
        telemetry: Optional[TelemetryDispatcher] = None,
        config: Optional[PersonalizationConfig] = None,
    ) -> None:
        self.store: BehaviorStore = store or InMemoryBehaviorStore()
        self.telemetry = telemetry or TelemetryDispatcher()
        self.config = config or PersonalizationConfig()

    # ── Write paths ───────────────────────────────────────────────────────────

    def track_search(self, user_id: str, query: str, now: Optional[datetime] = None) -> None:
        """Record a search query.

        Raises:
            pydantic.ValidationError: If ``query`` is blank.
        """
        item = SearchHistoryItem(query=query, timestamp=now or utcnow())
        cap = self.config.max_search_history

        def apply(profile: BehaviorProfile) -> None:
            profile.search_history.insert(0, item)
            del profile.search_history[cap:]
            profile.updated_at = item.timestamp

        self.store.update(user_id, apply)
        self._mirror("search", {"user_id": user_id, "query": item.query})

    def track_property_view(
        self,
        user_id: str,
        prop: PropertyRecord,
        duration: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Record a property detail view with optional dwell time (seconds)."""
        view = ViewedProperty(property_id=prop.id, timestamp=now or utcnow(), duration=duration)
        weight = 2.0 if duration is not None and duration >= self.config.long_view_seconds else 1.0
        cap = self.config.max_viewed_properties

        def apply(profile: BehaviorProfile) -> None:
            profile.viewed_properties.insert(0, view)
            del profile.viewed_properties[cap:]
            _bump(profile.type_counts, prop.type, weight)
            _bump(profile.location_counts, prop.location.label, weight)
            for amenity in prop.amenities:
                _bump(profile.amenity_counts, amenity, weight)
            profile.updated_at = view.timestamp

        self.store.update(user_id, apply)
        self._mirror(
            "property_view",
            {"user_id": user_id, "property_id": prop.id, "duration": duration},
        )

    def track_filters(
        self,
        user_id: str,
        filters: FilterSet,
        now: Optional[datetime] = None,
    ) -> None:
        """Record an applied filter set."""
        applied = AppliedFilters(filters=filters, timestamp=now or utcnow())
        cap = self.config.max_filter_sets

        def apply(profile: BehaviorProfile) -> None:
            profile.filter_history.insert(0, applied)
            del profile.filter_history[cap:]
            _bump(profile.type_counts, filters.effective_type, 1.0)
            _bump(profile.location_counts, filters.location, 1.0)
            for amenity in filters.amenities:
                _bump(profile.amenity_counts, amenity, 1.0)
            if filters.price_min is not None and filters.price_max is not None:
                self._fold_price_range(profile, filters.price_min, filters.price_max)
            profile.updated_at = applied.timestamp

        self.store.update(user_id, apply)
        self._mirror(
            "filters",
            {"user_id": user_id, "filters": filters.model_dump(mode="json", by_alias=True)},
        )

    def mark_listings_seen(self, user_id: str, now: Optional[datetime] = None) -> None:
        """Advance the new-listings cutoff to ``now``."""
        seen_at = ensure_utc(now) if now is not None else utcnow()

        def apply(profile: BehaviorProfile) -> None:
            profile.last_seen_at = seen_at

        self.store.update(user_id, apply)

    def clear_all_behavior_data(self, user_id: str) -> None:
        """Reset the user's profile to defaults."""
        self.store.reset(user_id)
        logger.info("Behavior data cleared | user_id=%s", user_id)

    # ── Read paths ────────────────────────────────────────────────────────────

    def get_profile(self, user_id: str) -> BehaviorProfile:
        return self.store.get(user_id)

    def get_search_history(self, user_id: str, limit: Optional[int] = None) -> list[SearchHistoryItem]:
        """Searches, most recent first, one entry per distinct query.

        Queries compare case-insensitively; the most recent spelling wins.
        """
        seen: set[str] = set()
        out: list[SearchHistoryItem] = []
        for item in self.store.get(user_id).search_history:
            key = item.query.lower()
            if key in seen:
                continue
            seen.add(key)
            out.append(item)
        return out if limit is None else out[:limit]

    def get_viewed_properties(self, user_id: str) -> list[ViewedProperty]:
        """Latest view per property, most recent first."""
        seen: set[str] = set()
        out: list[ViewedProperty] = []
        for view in self.store.get(user_id).viewed_properties:
            if view.property_id not in seen:
                seen.add(view.property_id)
                out.append(view)
        return out

    def get_filter_history(self, user_id: str) -> list[AppliedFilters]:
        return list(self.store.get(user_id).filter_history)

    def get_preference_snapshot(self, user_id: str) -> PreferenceSnapshot:
        return self.snapshot_from(self.store.get(user_id))

    def snapshot_from(self, profile: BehaviorProfile) -> PreferenceSnapshot:
        """Derive a ``PreferenceSnapshot`` from an already-loaded profile."""
        price_min, price_max = self._preferred_price_range(profile)
        return PreferenceSnapshot(
            price_min=price_min,
            price_max=price_max,
            preferred_types=_preferred(profile.type_counts, TOP_TYPES),
            preferred_locations=_preferred(profile.location_counts, TOP_LOCATIONS),
            preferred_amenities=_preferred(profile.amenity_counts, TOP_AMENITIES),
        )

    def get_ui_adaptations(self, user_id: str) -> UIAdaptations:
        """Presentation hints; all-empty with the default price range for a new user."""
        profile = self.store.get(user_id)
        cfg = self.config
        suggested = self.get_search_history(user_id, limit=cfg.suggested_searches)
        return UIAdaptations(
            featured_categories=rank_counts(profile.type_counts, cfg.featured_categories),
            highlighted_amenities=rank_counts(profile.amenity_counts, cfg.highlighted_amenities),
            suggested_searches=tuple(item.query for item in suggested),
            preferred_price_range=self._preferred_price_range(profile),
        )

    def get_personalized_search_filters(self, user_id: str) -> FilterSet:
        """Pre-filled marketplace filters from the user's top preferences."""
        snapshot = self.get_preference_snapshot(user_id)
        return FilterSet(
            property_type=snapshot.preferred_types[0] if snapshot.preferred_types else None,
            location=snapshot.preferred_locations[0] if snapshot.preferred_locations else None,
            price_min=snapshot.price_min,
            price_max=snapshot.price_max,
            amenities=snapshot.preferred_amenities,
        )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _preferred_price_range(self, profile: BehaviorProfile) -> tuple[float, float]:
        if profile.price_ranges:
            top = profile.price_ranges[0]
            return (top.min, top.max)
        return (self.config.default_price_min, self.config.default_price_max)

    def _fold_price_range(self, profile: BehaviorProfile, low: float, high: float) -> None:
        tolerance = self.config.price_range_similarity
        drift = self.config.price_range_drift
        for bucket in profile.price_ranges:
            if (
                _relative_gap(bucket.min, low) < tolerance
                and _relative_gap(bucket.max, high) < tolerance
            ):
                bucket.min = round(bucket.min * (1 - drift) + low * drift)
                bucket.max = round(bucket.max * (1 - drift) + high * drift)
                bucket.count += 1
                break
        else:
            profile.price_ranges.append(PriceRangePreference(min=low, max=high))
        profile.price_ranges.sort(key=lambda b: -b.count)

    def _mirror(self, event: str, payload: dict[str, Any]) -> None:
        self.telemetry.dispatch(event, payload)
