"""
Per-property analysis engines.

Modules:
  valuation     — growth-rate model and 1/3/5-year price prediction
  investment    — ROI, risk, potential tier and rule-based assessment
  market_trend  — neighborhood trend and synthetic 12-month history
  pipeline      — bundled analysis, batch runs, cache, investment opportunities
  appraisal     — detailed appraisal with comparables and value drivers
  forecast      — compound-growth projection and forecast-driven opportunities
"""
