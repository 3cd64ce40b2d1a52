"""Catalog DTOs for the Service Layer (Pydantic v2, immutable).

- ``PriceQuoteDTO``: inputs of an ad-hoc price quote.
- ``BulkMarginDTO``: new margin for many wines at once.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PriceQuoteDTO(BaseModel):
    """Immutable DTO for a price quote.

    Either ``wine_id`` (price an existing wine, optionally with a member
    discount) or the raw cost inputs must be supplied.
    """

    model_config = ConfigDict(frozen=True)

    wine_id: Optional[str] = None
    cost_amount: Optional[Decimal] = None
    exchange_rate: Decimal = Decimal("1.0")
    alcohol_tax: Optional[Decimal] = None
    margin_percentage: Decimal = Decimal("0")
    price_includes_vat: bool = True
    member_discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)

    @field_validator("wine_id")
    @classmethod
    def blank_wine_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not str(v).strip():
            return None
        return v

    @property
    def is_for_wine(self) -> bool:
        return self.wine_id is not None


class BulkMarginDTO(BaseModel):
    """Immutable DTO for a bulk margin update.

    An empty ``wine_ids`` list means every alive wine.
    """

    model_config = ConfigDict(frozen=True)

    margin_percentage: Decimal = Field(ge=0, lt=100)
    wine_ids: List[str] = []
