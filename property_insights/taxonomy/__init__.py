"""
Static taxonomy: qualitative tiers (``tiers``) and process-wide market
lookup tables (``market_tables``).  Neither module imports anything outside
``taxonomy`` except ``errors``.
"""
