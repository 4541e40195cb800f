"""
Appraisal and projection models: detailed valuation of a described property
and compound-growth value projections.

``AppraisalRequest`` accepts camelCase keys (``squareFeet``, ``yearBuilt``)
as well as snake_case names so an intake form can be validated directly.
All models are frozen.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from property_insights.taxonomy.tiers import ProjectionConfidence, PropertyCondition


class AppraisalRequest(BaseModel):
    """A property described by its owner for appraisal.

    Attributes:
        address:       Street address (display only).
        property_type: Free-form type, e.g. ``"house"``.
        square_feet:   Living area; must be > 0.
        bedrooms:      Bedroom count.
        bathrooms:     Bathroom count (halves allowed).
        year_built:    Construction year.
        condition:     ``PropertyCondition``.
        features:      Notable features; each adds a flat premium.
        neighborhood:  Optional neighborhood for the market snapshot.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    address: str = ""
    property_type: str = ""
    square_feet: float = Field(gt=0)
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: float = Field(default=0, ge=0)
    year_built: int
    condition: PropertyCondition = PropertyCondition.GOOD
    features: tuple[str, ...] = ()
    neighborhood: Optional[str] = None

    @field_validator("condition", mode="before")
    @classmethod
    def lower_condition(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class ComparableSale(BaseModel):
    """A recent nearby sale used to support an appraisal."""

    model_config = ConfigDict(frozen=True)

    id: str
    address: str
    price: float
    square_feet: float
    bedrooms: int
    bathrooms: float
    year_built: int
    distance_miles: float
    similarity: int
    sold_date: date


class ValueRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    low: float
    high: float

    @model_validator(mode="after")
    def check_order(self) -> "ValueRange":
        if self.low > self.high:
            raise ValueError("low must not exceed high.")
        return self


class ValuationFactor(BaseModel):
    """One qualitative driver of an appraisal; ``impact`` is in percent."""

    model_config = ConfigDict(frozen=True)

    name: str
    impact: float
    description: str


class AppraisalMarket(BaseModel):
    """Market context attached to an appraisal (growth rates in percent)."""

    model_config = ConfigDict(frozen=True)

    neighborhood_growth: float
    city_growth: float
    price_per_sqft: float


class AppraisalResult(BaseModel):
    """Outcome of ``analysis.appraisal.appraise_property``.

    Attributes:
        estimated_value: Rounded point estimate.
        value_range:     ``estimated_value`` +/- 5%, rounded.
        confidence:      Integer score in [70, 95].
        comparables:     Most similar recent sales, best first.
        factors:         Qualitative value drivers.
        market:          Growth rates and price per square foot.
    """

    model_config = ConfigDict(frozen=True)

    estimated_value: float
    value_range: ValueRange
    confidence: int = Field(ge=0, le=100)
    comparables: tuple[ComparableSale, ...] = ()
    factors: tuple[ValuationFactor, ...] = ()
    market: AppraisalMarket


class ValueProjection(BaseModel):
    """Compound-growth projection of a property's value.

    ``future_value = current_value * (1 + growth_rate / 100) ** years``.
    """

    model_config = ConfigDict(frozen=True)

    current_value: float
    future_value: float
    growth_rate: float
    years: int
    confidence: ProjectionConfidence
