"""
Recommendation models.

``Recommendation`` is ephemeral — rebuilt on every list fetch.  It is frozen;
"toggling" ``is_viewed`` or attaching an explanation produces a copy via
``model_copy(update=...)``.

``RecommendationExplanation`` is generated lazily on request and discarded on
close; it is never persisted.

``RecommendationSettings`` is the only entity in the core that survives a
process restart (see ``db.repositories.settings_repo``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from property_insights.models.property import PropertyRecord
from property_insights.taxonomy.tiers import ExplanationCategory, RecommendationSource


class ExplanationFactor(BaseModel):
    """One scored factor of an explanation (score on a 0–5 scale)."""

    model_config = ConfigDict(frozen=True)

    category: ExplanationCategory
    title: str
    description: str
    score: float

    @field_validator("score")
    @classmethod
    def validate_score_range(cls, v: float) -> float:
        if not 0.0 <= v <= 5.0:
            raise ValueError(f"score must be in [0, 5], got {v}.")
        return v


class RecommendationExplanation(BaseModel):
    """Human-readable breakdown of why a property was recommended.

    ``available`` is ``False`` for the placeholder returned when the text
    service failed; such explanations carry no factors.
    """

    model_config = ConfigDict(frozen=True)

    summary: str
    factors: tuple[ExplanationFactor, ...] = ()
    conclusion: str = ""
    available: bool = True


NO_EXPLANATION = RecommendationExplanation(
    summary="No explanation available.",
    factors=(),
    conclusion="",
    available=False,
)


class Recommendation(BaseModel):
    """A property recommended to a user.

    Attributes:
        id:           Ephemeral id (``rec_<hex>``).
        user_id:      Recipient; ``"system"`` for non-personal lists.
        property:     The recommended listing.
        match_score:  Compatibility in [0, 1].  For trending entries this is
                      the trend score, not personal fit.
        reasons:      Up to a few short strings naming top factors.
        source:       Which list produced this entry.
        is_viewed:    Whether the user has opened it.
        created_at:   UTC creation time.
        explanation:  Attached only while an explanation is open.
        reference_property_id: For similar-property entries, the anchor.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    property: PropertyRecord
    match_score: float
    reasons: tuple[str, ...] = ()
    source: RecommendationSource
    is_viewed: bool = False
    created_at: datetime
    explanation: Optional[RecommendationExplanation] = None
    reference_property_id: Optional[str] = None

    @field_validator("match_score")
    @classmethod
    def validate_match_score(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"match_score must be in [0, 1], got {v}.")
        return v

    @property
    def property_id(self) -> str:
        return self.property.id


class RecommendationSettings(BaseModel):
    """Per-user recommendation preferences (persisted)."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    enable_personalized: bool = True
    enable_similar_properties: bool = True
    enable_trending: bool = True
    min_match_score: float = 0.7
    notify_on_new_matches: bool = True
    max_recommendations_per_day: int = 5

    @field_validator("min_match_score")
    @classmethod
    def validate_min_match_score(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"min_match_score must be in [0, 1], got {v}.")
        return v

    @field_validator("max_recommendations_per_day")
    @classmethod
    def validate_max_per_day(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_recommendations_per_day must be non-negative.")
        return v
