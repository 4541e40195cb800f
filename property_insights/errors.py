"""
Error kinds raised by the analytics core.

Propagation rules
-----------------
InputValidationError : a PropertyRecord is missing or carries invalid required
                       fields (e.g. ``price <= 0``).  Batch callers exclude the
                       offending property and continue.
ComputationError     : a guarded arithmetic precondition failed (ROI needs a
                       positive current price).  Same batch handling.
ExternalServiceError : the telemetry sink or the explanation text service was
                       unreachable or answered with a non-success status.
                       Never surfaced from telemetry; converted to a
                       "no explanation available" result for explanations.
LookupMiss           : a neighborhood or property type is absent from the
                       static tables.  Raised by the strict
                       ``MarketTables.require_*`` lookups; the fallback
                       lookups used by the engines catch it, so it never
                       reaches their callers.
"""

from __future__ import annotations

from typing import Optional


class PropertyInsightsError(Exception):
    """Base class for all errors raised by ``property_insights``."""


class InputValidationError(PropertyInsightsError, ValueError):
    """A property record is unusable for the requested computation.

    Attributes:
        property_id: Id of the offending property, when known.
    """

    def __init__(self, message: str, property_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.property_id = property_id


class ComputationError(PropertyInsightsError, ArithmeticError):
    """A guarded computation could not be carried out."""

    def __init__(self, message: str, property_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.property_id = property_id


class ExternalServiceError(PropertyInsightsError):
    """An external collaborator failed or could not be reached.

    Attributes:
        service:     Short name of the collaborator ("telemetry", "explanation").
        status_code: HTTP status code if a response was received.
    """

    def __init__(
        self,
        message: str,
        service: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class LookupMiss(PropertyInsightsError, LookupError):
    """A key was absent from a static lookup table.

    Raised by ``MarketTables.require_neighborhood`` and
    ``require_property_type``.  The ``*_rate`` lookups catch it and return the
    documented fallback rate.
    """

    def __init__(self, table: str, key: str) -> None:
        super().__init__(f"'{key}' not found in {table} table.")
        self.table = table
        self.key = key
