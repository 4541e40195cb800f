"""
property_insights — rule-based real-estate analytics and personalized
property recommendations.

Sub-packages:
  taxonomy         — qualitative tiers and static market lookup tables
  models           — pydantic entities (properties, analyses, behavior, recommendations)
  analysis         — valuation, investment, market-trend engines and batch helpers
  personalization  — behavior store and profile builder
  recommendations  — scorer, ranker, explainer and the session state holder
  clients          — httpx clients for the telemetry sink and explanation service
  db               — SQLite persistence for recommendation settings
"""

__version__ = "0.1.0"
