"""
Property recommendations.

Modules:
  scorer      — match score, trend score and reason strings
  similarity  — property-to-property similarity
  ranker      — list selection, thresholds, merge / dedup
  explainer   — factor breakdown and prose
  state       — sequence-numbered list state
  service     — RecommendationService session state holder
"""
