"""Checkout DTOs for the Service Layer (Pydantic v2, immutable).

- ``CheckoutLineDTO``: one cart line (wine + bottles).
- ``ValidateCartDTO``: input of the six-bottle pre-check.
- ``ConfirmCheckoutDTO``: input of checkout confirmation.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CheckoutLineDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    wine_id: str
    quantity: int = Field(ge=1)

    @field_validator("wine_id")
    @classmethod
    def canonical_wine_id(cls, v: str) -> str:
        """Lower-case, hyphenated UUID text; other strings pass through as unknown ids."""
        try:
            return str(uuid.UUID(v.strip()))
        except ValueError:
            return v


class ValidateCartDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: List[CheckoutLineDTO] = []


class ConfirmCheckoutDTO(BaseModel):
    """Immutable DTO for checkout confirmation.

    ``delivery_zone_id`` and ``pallet_id`` are manual overrides for
    addresses the zone matcher cannot place.
    """

    model_config = ConfigDict(frozen=True)

    lines: List[CheckoutLineDTO] = []
    user_id: Optional[str] = None
    postcode: str = ""
    city: str = ""
    country_code: str = ""
    delivery_zone_id: Optional[str] = None
    pallet_id: Optional[str] = None
    idempotency_key: Optional[str] = None

    @field_validator("country_code")
    @classmethod
    def normalize_country(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("idempotency_key", "delivery_zone_id", "pallet_id")
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def total_bottles(self) -> int:
        return sum(line.quantity for line in self.lines)
