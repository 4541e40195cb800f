"""
Behavior-tracking models: raw events, the per-user profile and the derived
preference snapshot.

``BehaviorProfile`` is the **only** mutable model in the package — its
history lists grow as events are tracked and its preference counters are
updated incrementally.  History entries are never edited or removed except by
retention caps (oldest dropped) and an explicit clear, which replaces the
whole profile with a fresh default one.

All history lists are ordered most-recent-first.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from property_insights.utils.time_utils import ensure_utc


class SearchHistoryItem(BaseModel):
    """A search query issued by the user."""

    model_config = ConfigDict(frozen=True)

    query: str
    timestamp: datetime

    @field_validator("query")
    @classmethod
    def validate_query_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("query must not be empty.")
        return v.strip()


class ViewedProperty(BaseModel):
    """A property detail view, with optional dwell time in seconds."""

    model_config = ConfigDict(frozen=True)

    property_id: str
    timestamp: datetime
    duration: Optional[float] = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("duration must be non-negative.")
        return v


class FilterSet(BaseModel):
    """A set of search filters applied in the marketplace.

    ``property_type == "all"`` (or ``None``) means no type restriction.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    property_type: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    location: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    amenities: tuple[str, ...] = ()
    sort_by: Optional[str] = None

    @model_validator(mode="after")
    def validate_price_bounds(self) -> "FilterSet":
        if (
            self.price_min is not None
            and self.price_max is not None
            and self.price_min > self.price_max
        ):
            raise ValueError(
                f"price_min ({self.price_min}) must be <= price_max ({self.price_max})."
            )
        return self

    @property
    def effective_type(self) -> Optional[str]:
        if not self.property_type or self.property_type.lower() == "all":
            return None
        return self.property_type


class AppliedFilters(BaseModel):
    """A ``FilterSet`` with the time it was applied."""

    model_config = ConfigDict(frozen=True)

    filters: FilterSet
    timestamp: datetime


class PriceRangePreference(BaseModel):
    """A bucket of similar price ranges the user has filtered on.

    Mutable: a new range within the similarity tolerance of this bucket is
    folded into it (count incremented, bounds drift toward the new range).
    """

    model_config = ConfigDict(frozen=False)

    min: float
    max: float
    count: int = 1


class PreferenceSnapshot(BaseModel):
    """Derived preferences used by the recommendation scorer.

    Ranked lists are most-frequent first.
    """

    model_config = ConfigDict(frozen=True)

    price_min: float
    price_max: float
    preferred_types: tuple[str, ...] = ()
    preferred_locations: tuple[str, ...] = ()
    preferred_amenities: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.preferred_types or self.preferred_locations or self.preferred_amenities)


class BehaviorProfile(BaseModel):
    """Per-user behavior history plus incremental preference counters.

    Mutable by design: ``track_*`` operations on the profile builder prepend
    history entries and bump counters in place.

    Attributes:
        user_id:           Owner.
        search_history:    Queries, most recent first.
        viewed_properties: Views, most recent first.
        filter_history:    Applied filter sets, most recent first.
        type_counts:       Property type -> weighted count.
        location_counts:   Location -> weighted count.
        amenity_counts:    Amenity -> weighted count.
        price_ranges:      Price-range buckets, highest count first.
        last_seen_at:      When the user last saw the new-listings list.
        updated_at:        Time of the latest tracked event.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    user_id: str
    search_history: list[SearchHistoryItem] = Field(default_factory=list)
    viewed_properties: list[ViewedProperty] = Field(default_factory=list)
    filter_history: list[AppliedFilters] = Field(default_factory=list)
    type_counts: dict[str, float] = Field(default_factory=dict)
    location_counts: dict[str, float] = Field(default_factory=dict)
    amenity_counts: dict[str, float] = Field(default_factory=dict)
    price_ranges: list[PriceRangePreference] = Field(default_factory=list)
    last_seen_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("last_seen_at", "updated_at")
    @classmethod
    def normalise_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None


class UIAdaptations(BaseModel):
    """Presentation hints derived from a behavior profile."""

    model_config = ConfigDict(frozen=True)

    featured_categories: tuple[str, ...] = ()
    highlighted_amenities: tuple[str, ...] = ()
    suggested_searches: tuple[str, ...] = ()
    preferred_price_range: tuple[float, float]


def rank_counts(counts: dict[str, float], limit: Optional[int] = None) -> tuple[str, ...]:
    """Keys of ``counts`` by count descending; ties keep first-seen order."""
    ranked = sorted(counts, key=lambda k: -counts[k])
    return tuple(ranked if limit is None else ranked[:limit])
