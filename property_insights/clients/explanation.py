"""
Client for the external explanation text-generation service.

The service turns a structured factor breakdown into prose.  Request::

    POST {base_url}/explanations
    {"property": {...}, "match_score": 0.82, "factors": [...]}

Response::

    {"summary": "...", "conclusion": "..."}

One attempt per call, no retry.  Every failure (transport, non-2xx status,
malformed body) is raised as ``ExternalServiceError``; the explanation
generator converts it into the "no explanation available" result.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from property_insights.errors import ExternalServiceError


class ExplanationTextClient(Protocol):
    async def generate(self, request: dict[str, Any]) -> dict[str, str]: ...


class HttpExplanationClient:
    """httpx-backed ``ExplanationTextClient``."""

    def __init__(self, base_url: str, timeout_seconds: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    async def generate(self, request: dict[str, Any]) -> dict[str, str]:
        """Return ``{"summary": ..., "conclusion": ...}``.

        Raises:
            ExternalServiceError: On any failure.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                resp = await client.post(f"{self.base_url}/explanations", json=request)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(
                f"Explanation service returned {exc.response.status_code}.",
                service="explanation",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalServiceError(
                f"Explanation service failed: {exc}", service="explanation"
            ) from exc

        if not isinstance(body, dict) or not isinstance(body.get("summary"), str):
            raise ExternalServiceError(
                "Explanation service response is missing 'summary'.",
                service="explanation",
            )
        return {
            "summary": body["summary"],
            "conclusion": str(body.get("conclusion") or ""),
        }
