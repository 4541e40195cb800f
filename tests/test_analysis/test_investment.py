"""
Tests for property_insights/analysis/investment.py.

What we test
------------
analyze_investment():
  - Worked example: roi_5y 25.74 -> Excellent, High confidence -> Low risk.
  - ROI values follow (predicted - current) / current * 100.
  - Assessment rules append independently (strengths / weaknesses /
    opportunities) for location, type, price point and age.
  - Rules for neighborhoods absent from the table never fire.

classify_potential():
  - Scenario values 30/22/18/12/5 and exact boundary values.

risk_for_confidence():
  - Pure function of the confidence tier.

compute_roi():
  - Non-positive base price raises ComputationError.
"""

from __future__ import annotations

import pytest

from property_insights.analysis.investment import (
    analyze_investment,
    classify_potential,
    compute_roi,
    investment_score,
    risk_for_confidence,
)
from property_insights.analysis.valuation import predict_property_price
from property_insights.errors import ComputationError, InputValidationError
from property_insights.taxonomy.tiers import InvestmentPotential, PredictionConfidence, RiskLevel


def _analyze(prop, as_of):
    return analyze_investment(prop, predict_property_price(prop, as_of=as_of), as_of=as_of)


class TestWorkedExample:
    def test_excellent_low_risk(self, downtown_house, as_of):
        analysis = _analyze(downtown_house, as_of)
        assert analysis.roi_5y == pytest.approx(25.74)
        assert analysis.potential == InvestmentPotential.EXCELLENT
        assert analysis.risk_level == RiskLevel.LOW

    def test_roi_per_horizon(self, downtown_house, as_of):
        analysis = _analyze(downtown_house, as_of)
        assert analysis.roi_1y == pytest.approx(5.72)
        assert analysis.roi_3y == pytest.approx(16.016)

    def test_assessment(self, downtown_house, as_of):
        analysis = _analyze(downtown_house, as_of)
        assert analysis.strengths == (
            "Located in a high-growth neighborhood",
            "New construction with minimal maintenance needs",
        )
        assert analysis.weaknesses == ()
        assert analysis.opportunities == ("Area is experiencing rapid development",)


class TestAssessmentRules:
    def test_slow_neighborhood_is_weakness(self, make_property, as_of):
        analysis = _analyze(make_property(neighborhood="Southside", year_built=None), as_of)
        assert "Located in a slower-growth neighborhood" in analysis.weaknesses

    def test_unknown_neighborhood_adds_nothing(self, make_property, as_of):
        analysis = _analyze(
            make_property(neighborhood="Atlantis", type="castle", price=500_000, year_built=None),
            as_of,
        )
        assert analysis.strengths == ()
        assert analysis.weaknesses == ()
        assert analysis.opportunities == ()

    def test_high_demand_property_type(self, make_property, as_of):
        analysis = _analyze(make_property(type="penthouse", neighborhood="Riverside", year_built=None), as_of)
        assert "Penthouses are in high demand" in analysis.strengths

    def test_entry_level_price(self, make_property, as_of):
        analysis = _analyze(make_property(price=250_000, neighborhood="Riverside", year_built=None), as_of)
        assert "Entry-level price point with broad market appeal" in analysis.strengths

    def test_luxury_price(self, make_property, as_of):
        analysis = _analyze(make_property(price=1_500_000, neighborhood="Riverside", year_built=None), as_of)
        assert "Luxury price point with limited buyer pool" in analysis.weaknesses
        assert "Potential for luxury rental income" in analysis.opportunities

    def test_old_property(self, make_property, as_of):
        analysis = _analyze(make_property(year_built=as_of.year - 50, neighborhood="Riverside"), as_of)
        assert "Older property may require renovations" in analysis.weaknesses
        assert "Potential to add value through renovations" in analysis.opportunities

    def test_rules_accumulate(self, make_property, as_of):
        prop = make_property(
            price=2_000_000, neighborhood="Beachfront", type="villa",
            year_built=as_of.year - 40,
        )
        analysis = _analyze(prop, as_of)
        assert len(analysis.strengths) == 2       # growth + villa demand
        assert len(analysis.weaknesses) == 2      # luxury + old
        assert len(analysis.opportunities) == 3   # development + rental + renovation

    def test_invalid_price_raises(self, make_property, downtown_house, as_of):
        pred = predict_property_price(downtown_house, as_of=as_of)
        with pytest.raises(InputValidationError):
            analyze_investment(make_property(price=0), pred, as_of=as_of)


class TestClassifyPotential:
    @pytest.mark.parametrize("roi,expected", [
        (30, InvestmentPotential.EXCELLENT),
        (22, InvestmentPotential.VERY_GOOD),
        (18, InvestmentPotential.GOOD),
        (12, InvestmentPotential.FAIR),
        (5, InvestmentPotential.POOR),
    ])
    def test_scenarios(self, roi, expected):
        assert classify_potential(roi) == expected

    @pytest.mark.parametrize("roi,expected", [
        (25.0, InvestmentPotential.EXCELLENT),
        (20.0, InvestmentPotential.VERY_GOOD),
        (15.0, InvestmentPotential.GOOD),
        (10.0, InvestmentPotential.FAIR),
        (9.999, InvestmentPotential.POOR),
        (-5.0, InvestmentPotential.POOR),
    ])
    def test_boundaries_are_inclusive(self, roi, expected):
        assert classify_potential(roi) == expected


class TestRisk:
    @pytest.mark.parametrize("confidence,expected", [
        (PredictionConfidence.VERY_HIGH, RiskLevel.LOW),
        (PredictionConfidence.HIGH, RiskLevel.LOW),
        (PredictionConfidence.MODERATE, RiskLevel.MEDIUM),
        (PredictionConfidence.LOW, RiskLevel.HIGH),
        (PredictionConfidence.VERY_LOW, RiskLevel.HIGH),
    ])
    def test_mapping(self, confidence, expected):
        assert risk_for_confidence(confidence) == expected

    def test_same_tier_same_risk_across_properties(self, make_property, as_of):
        props = [
            make_property(id=f"p-{i}", price=price, neighborhood=nb, type=t, year_built=None)
            for i, (price, nb, t) in enumerate([
                (200_000, "Downtown", "house"),
                (1_200_000, "Westside", "condo"),
                (750_000, "Riverside", "loft"),
                (90_000, "Eastside", "villa"),
            ])
        ]
        by_tier: dict[PredictionConfidence, set[RiskLevel]] = {}
        for prop in props:
            pred = predict_property_price(prop, as_of=as_of)
            analysis = analyze_investment(prop, pred, as_of=as_of)
            by_tier.setdefault(pred.confidence, set()).add(analysis.risk_level)
        assert all(len(levels) == 1 for levels in by_tier.values())


class TestComputeRoi:
    def test_positive(self):
        assert compute_roi(110.0, 100.0) == pytest.approx(10.0)

    @pytest.mark.parametrize("base", [0.0, -10.0])
    def test_non_positive_base_raises(self, base):
        with pytest.raises(ComputationError):
            compute_roi(100.0, base)

    def test_investment_score_uses_multiplier(self, downtown_house, as_of):
        analysis = _analyze(downtown_house, as_of)
        assert investment_score(analysis) == pytest.approx(25.74 * 1.5)
