"""
Derived analysis outputs: price prediction, investment analysis, market trend.

None of these are persisted — they are recomputed per request (optionally
memoised by property id in ``analysis.pipeline.AnalysisCache``).  All models
are frozen.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from property_insights.taxonomy.tiers import (
    InvestmentPotential,
    MarketLevel,
    PredictionConfidence,
    RiskLevel,
)


class PricePrediction(BaseModel):
    """Price forecast for 1, 3 and 5 year horizons.

    Growth rates are percentages; ``predicted_price_Ny`` is
    ``current_price * (1 + growth_rate_Ny / 100)``.
    """

    model_config = ConfigDict(frozen=True)

    current_price: float
    predicted_price_1y: float
    predicted_price_3y: float
    predicted_price_5y: float
    growth_rate_1y: float
    growth_rate_3y: float
    growth_rate_5y: float
    confidence: PredictionConfidence

    @field_validator("current_price")
    @classmethod
    def validate_current_price(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("current_price must be positive.")
        return v


class InvestmentAnalysis(BaseModel):
    """ROI, risk and qualitative assessment of a property as an investment.

    Attributes:
        potential:     Tier derived from ``roi_5y``.
        roi_1y/3y/5y:  Percent return over each horizon.
        risk_level:    Derived from the prediction's confidence tier only.
        strengths:     Independent rule outputs (may be empty).
        weaknesses:    Independent rule outputs (may be empty).
        opportunities: Independent rule outputs (may be empty).
    """

    model_config = ConfigDict(frozen=True)

    potential: InvestmentPotential
    roi_1y: float
    roi_3y: float
    roi_5y: float
    risk_level: RiskLevel
    strengths: tuple[str, ...] = ()
    weaknesses: tuple[str, ...] = ()
    opportunities: tuple[str, ...] = ()


class PricePoint(BaseModel):
    """One point of a monthly price index series."""

    model_config = ConfigDict(frozen=True)

    month: str
    value: float


class MarketTrend(BaseModel):
    """Neighborhood-level trend summary with a 12-point index history."""

    model_config = ConfigDict(frozen=True)

    neighborhood: str
    current_trend: float
    forecast: float
    demand_level: MarketLevel
    supply_level: MarketLevel
    price_history: tuple[PricePoint, ...]

    @model_validator(mode="after")
    def validate_history_length(self) -> "MarketTrend":
        if len(self.price_history) != 12:
            raise ValueError(
                f"price_history must have 12 points, got {len(self.price_history)}."
            )
        return self


class PropertyAnalysis(BaseModel):
    """Everything the detail view shows for one property."""

    model_config = ConfigDict(frozen=True)

    property_id: str
    price_prediction: PricePrediction
    investment_analysis: InvestmentAnalysis
    market_trend: MarketTrend
    similar_properties: tuple[str, ...] = ()
    last_updated: datetime
