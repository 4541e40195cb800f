"""
Investment analyzer: ROI, risk and qualitative assessment for one property.

ROI
---
    roi_h = (predicted_price_h - current_price) / current_price * 100

Risk (pure function of the prediction's confidence tier)
--------------------------------------------------------
    Very High, High -> Low risk
    Low, Very Low   -> High risk
    Moderate        -> Medium risk

Potential tier from roi_5y (inclusive lower bound, evaluated top-down)
---------------------------------------------------------------------
    >= 25 Excellent | >= 20 Very Good | >= 15 Good | >= 10 Fair | else Poor

Assessment rules
----------------
Each rule is evaluated independently and appends exactly one string; no rule
removes or overrides another.

    neighborhood growth > 5   -> strength + opportunity
    neighborhood growth < 3   -> weakness
    property-type growth > 4.5 -> strength
    price < 300,000           -> strength
    price > 1,000,000         -> weakness + opportunity
    age < 5                   -> strength
    age > 30                  -> weakness + opportunity

Neighborhood and type rules only fire for keys present in the static tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from property_insights.errors import ComputationError, InputValidationError
from property_insights.models.analysis import InvestmentAnalysis, PricePrediction
from property_insights.models.property import PropertyRecord
from property_insights.taxonomy.market_tables import MarketTables, get_market_tables
from property_insights.taxonomy.tiers import (
    InvestmentPotential,
    PredictionConfidence,
    RiskLevel,
)
from property_insights.utils.time_utils import property_age


_RISK_BY_CONFIDENCE: dict[PredictionConfidence, RiskLevel] = {
    PredictionConfidence.VERY_HIGH: RiskLevel.LOW,
    PredictionConfidence.HIGH:      RiskLevel.LOW,
    PredictionConfidence.MODERATE:  RiskLevel.MEDIUM,
    PredictionConfidence.LOW:       RiskLevel.HIGH,
    PredictionConfidence.VERY_LOW:  RiskLevel.HIGH,
}

_POTENTIAL_THRESHOLDS: tuple[tuple[float, InvestmentPotential], ...] = (
    (25.0, InvestmentPotential.EXCELLENT),
    (20.0, InvestmentPotential.VERY_GOOD),
    (15.0, InvestmentPotential.GOOD),
    (10.0, InvestmentPotential.FAIR),
)

# Ranking weight applied to roi_5y when picking investment opportunities.
POTENTIAL_MULTIPLIER: dict[InvestmentPotential, float] = {
    InvestmentPotential.EXCELLENT: 1.5,
    InvestmentPotential.VERY_GOOD: 1.3,
    InvestmentPotential.GOOD:      1.1,
    InvestmentPotential.FAIR:      0.9,
    InvestmentPotential.POOR:      0.7,
}

ENTRY_LEVEL_PRICE = 300_000
LUXURY_PRICE = 1_000_000


def compute_roi(predicted_price: float, current_price: float) -> float:
    """Percent return from ``current_price`` to ``predicted_price``.

    Raises:
        ComputationError: If ``current_price <= 0``.
    """
    if current_price <= 0:
        raise ComputationError(f"ROI requires current_price > 0, got {current_price}.")
    return (predicted_price - current_price) / current_price * 100


def risk_for_confidence(confidence: PredictionConfidence) -> RiskLevel:
    return _RISK_BY_CONFIDENCE[confidence]


def classify_potential(roi_5y: float) -> InvestmentPotential:
    """Map a 5-year ROI percentage to an investment potential tier."""
    for lower_bound, tier in _POTENTIAL_THRESHOLDS:
        if roi_5y >= lower_bound:
            return tier
    return InvestmentPotential.POOR


@dataclass
class _Assessment:
    strengths: list[str]
    weaknesses: list[str]
    opportunities: list[str]


def _assess(prop: PropertyRecord, as_of: Optional[date], tables: MarketTables) -> _Assessment:
    out = _Assessment(strengths=[], weaknesses=[], opportunities=[])

    # Location
    if tables.is_known_neighborhood(prop.neighborhood):
        rate = tables.neighborhood_rate(prop.neighborhood)
        if rate > 5:
            out.strengths.append("Located in a high-growth neighborhood")
            out.opportunities.append("Area is experiencing rapid development")
        elif rate < 3:
            out.weaknesses.append("Located in a slower-growth neighborhood")

    # Property type
    if tables.is_known_property_type(prop.type) and tables.property_type_rate(prop.type) > 4.5:
        out.strengths.append(f"{prop.type.strip().title()}s are in high demand")

    # Price point
    if prop.price < ENTRY_LEVEL_PRICE:
        out.strengths.append("Entry-level price point with broad market appeal")
    elif prop.price > LUXURY_PRICE:
        out.weaknesses.append("Luxury price point with limited buyer pool")
        out.opportunities.append("Potential for luxury rental income")

    # Age
    age = property_age(prop.year_built, as_of)
    if age is not None:
        if age < 5:
            out.strengths.append("New construction with minimal maintenance needs")
        elif age > 30:
            out.weaknesses.append("Older property may require renovations")
            out.opportunities.append("Potential to add value through renovations")

    return out


def analyze_investment(
    prop: PropertyRecord,
    prediction: PricePrediction,
    as_of: Optional[date] = None,
    tables: Optional[MarketTables] = None,
) -> InvestmentAnalysis:
    """Analyze a property's investment potential from its price prediction.

    Args:
        prop:       The property.
        prediction: Output of ``predict_property_price(prop)``.
        as_of:      Reference date for age rules (default: today).
        tables:     Lookup tables (default: the process-wide instance).

    Raises:
        InputValidationError: If ``prop.price <= 0``.
        ComputationError:     If the ROI base price is not positive.
    """
    if prop.price is None or prop.price <= 0:
        raise InputValidationError(
            f"Property price must be > 0, got {prop.price!r}.", property_id=prop.id
        )
    tables = tables or get_market_tables()

    base = prop.price
    try:
        roi_1y = compute_roi(prediction.predicted_price_1y, base)
        roi_3y = compute_roi(prediction.predicted_price_3y, base)
        roi_5y = compute_roi(prediction.predicted_price_5y, base)
    except ComputationError as exc:
        exc.property_id = prop.id
        raise

    assessment = _assess(prop, as_of, tables)

    return InvestmentAnalysis(
        potential=classify_potential(roi_5y),
        roi_1y=roi_1y,
        roi_3y=roi_3y,
        roi_5y=roi_5y,
        risk_level=risk_for_confidence(prediction.confidence),
        strengths=tuple(assessment.strengths),
        weaknesses=tuple(assessment.weaknesses),
        opportunities=tuple(assessment.opportunities),
    )


def investment_score(analysis: InvestmentAnalysis) -> float:
    """Ranking score used to pick investment opportunities."""
    return analysis.roi_5y * POTENTIAL_MULTIPLIER[analysis.potential]
