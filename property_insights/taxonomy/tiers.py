"""
Qualitative tiers used across valuation, investment and recommendation output.

  - ``PredictionConfidence`` — reliability of a price prediction.
  - ``InvestmentPotential``  — attractiveness derived from 5-year ROI.
  - ``RiskLevel``            — investment risk derived from confidence.
  - ``MarketLevel``          — demand / supply level of a neighborhood.
  - ``RecommendationSource`` — which list produced a recommendation.
  - ``InteractionType``      — user interaction kinds sent to telemetry.
  - ``ExplanationCategory``  — factor categories in an explanation.
  - ``PropertyCondition``    — owner-reported condition for an appraisal.
  - ``ProjectionConfidence`` — reliability of a compound-growth projection.

Values are the human-readable labels shown by the presentation layer.

This module has NO imports from any other ``property_insights`` package.
"""

from enum import StrEnum


class PredictionConfidence(StrEnum):
    """Confidence tier of a ``PricePrediction``."""

    VERY_HIGH = "Very High"
    HIGH = "High"
    MODERATE = "Moderate"
    LOW = "Low"
    VERY_LOW = "Very Low"
    """Kept for completeness; the growth-rate thresholds never produce it."""


class InvestmentPotential(StrEnum):
    """Investment potential tier, best first."""

    EXCELLENT = "Excellent"
    VERY_GOOD = "Very Good"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class RiskLevel(StrEnum):
    """Investment risk level."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class MarketLevel(StrEnum):
    """Demand or supply level of a neighborhood market."""

    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"


class RecommendationSource(StrEnum):
    """List a recommendation was produced for.

    Declaration order is the precedence used when merging lists into the
    "All Recommendations" view.
    """

    PERSONALIZED = "personalized"
    NEW_LISTING = "new_listing"
    TRENDING = "trending"
    SIMILAR_PROPERTY = "similar_property"


class InteractionType(StrEnum):
    """Kinds of recommendation interaction reported to telemetry."""

    VIEW = "view"
    INQUIRY = "inquiry"
    FAVORITE = "favorite"


class ExplanationCategory(StrEnum):
    """Factor categories used by the explanation generator."""

    LOCATION = "location"
    PRICE = "price"
    FEATURES = "features"
    PREFERENCE = "preference"
    TREND = "trend"


class PropertyCondition(StrEnum):
    """Condition of a property submitted for appraisal, best first."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ProjectionConfidence(StrEnum):
    """Confidence of a value projection; shrinks as the horizon grows."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Merge precedence for the "All Recommendations" view (lower = wins).
SOURCE_PRECEDENCE: dict[RecommendationSource, int] = {
    source: rank for rank, source in enumerate(RecommendationSource)
}
