"""
Property records as received from the external listings catalog.

``PropertyRecord`` is read-only here: the catalog owns storage and CRUD.  The
model accepts the catalog's camelCase keys (``yearBuilt``, ``createdAt``) as
well as snake_case field names.

Price positivity is deliberately NOT enforced at construction — the valuation
engine rejects ``price <= 0`` with ``InputValidationError`` so that one bad
record can be excluded from a batch instead of failing catalog loading.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from property_insights.errors import InputValidationError
from property_insights.utils.time_utils import ensure_utc


class PropertyLocation(BaseModel):
    """Where a property is.

    A bare string location from the catalog is treated as the city name.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    address: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    def fields_for_matching(self) -> list[str]:
        """Lower-cased, non-empty location fields, most specific first."""
        values = [self.neighborhood, self.city, self.state, self.address]
        return [v.strip().lower() for v in values if v and v.strip()]

    def matches(self, preference: str) -> bool:
        """True if any location field contains ``preference`` (case-insensitive)."""
        needle = preference.strip().lower()
        if not needle:
            return False
        return any(needle in value for value in self.fields_for_matching())

    @property
    def label(self) -> str:
        """Most specific non-empty part, or ``""``."""
        for value in (self.neighborhood, self.city, self.state):
            if value:
                return value
        return ""


class PropertyRecord(BaseModel):
    """A listing from the catalog.

    Attributes:
        id:          Catalog identifier.
        title:       Display title (optional).
        price:       Asking price; must be > 0 for valuation.
        type:        Property type, e.g. ``"house"`` (matched case-insensitively).
        location:    ``PropertyLocation``.
        bedrooms:    Bedroom count.
        bathrooms:   Bathroom count (halves allowed).
        area:        Floor area, or ``None``.
        year_built:  Construction year, or ``None`` if unknown.
        amenities:   Amenity names, e.g. ``["Pool", "Gym"]``.
        created_at:  UTC datetime the listing was created, or ``None``.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str = ""
    price: float
    type: str = ""
    location: PropertyLocation = PropertyLocation()
    bedrooms: int = 0
    bathrooms: float = 0
    area: Optional[float] = None
    year_built: Optional[int] = None
    amenities: tuple[str, ...] = ()
    created_at: Optional[datetime] = None

    @field_validator("location", mode="before")
    @classmethod
    def coerce_string_location(cls, v: Any) -> Any:
        if isinstance(v, str):
            return {"city": v}
        if v is None:
            return {}
        return v

    @field_validator("bedrooms", "bathrooms", "area")
    @classmethod
    def validate_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("Room counts and area must be non-negative.")
        return v

    @field_validator("created_at")
    @classmethod
    def normalise_created_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @property
    def neighborhood(self) -> Optional[str]:
        return self.location.neighborhood

    def has_amenity(self, amenity: str) -> bool:
        wanted = amenity.strip().lower()
        return any(a.strip().lower() == wanted for a in self.amenities)

    @classmethod
    def from_catalog_row(cls, row: dict[str, Any]) -> "PropertyRecord":
        """Build a record from a raw catalog dict.

        Raises:
            InputValidationError: If the row fails model validation.
        """
        try:
            return cls.model_validate(row)
        except ValidationError as exc:
            raise InputValidationError(
                f"Invalid property record: {exc.error_count()} validation error(s); "
                f"first: {exc.errors()[0]['msg']}",
                property_id=str(row.get("id")) if row.get("id") is not None else None,
            ) from exc
