"""
HTTP clients for external collaborators.

  telemetry    — behavior / interaction sink (fire-and-forget dispatcher)
  explanation  — explanation text-generation service

Endpoints are configured under ``[services]`` or via
``PROPERTY_INSIGHTS_TELEMETRY_URL`` / ``PROPERTY_INSIGHTS_EXPLANATION_URL``.
"""
