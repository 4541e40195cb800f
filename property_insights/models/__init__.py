"""
Pydantic models for every entity the core consumes or produces.

Modules:
  property        — PropertyRecord, PropertyLocation (read-only catalog input)
  analysis        — PricePrediction, InvestmentAnalysis, MarketTrend, PropertyAnalysis
  behavior        — behavior events, BehaviorProfile, PreferenceSnapshot, UIAdaptations
  recommendation  — Recommendation, RecommendationExplanation, RecommendationSettings
  appraisal       — AppraisalRequest, AppraisalResult, ComparableSale, ValueProjection
"""
