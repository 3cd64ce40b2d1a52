"""Zone matching DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class DeliveryAddress(BaseModel):
    model_config = ConfigDict(frozen=True)

    postcode: str = ""
    city: str = ""
    country_code: str = ""

    @field_validator("country_code")
    @classmethod
    def normalize_country(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def is_complete(self) -> bool:
        return bool(self.postcode and self.city and self.country_code)


class DeliveryZoneOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    distance_km: float
    radius_km: float


class ZoneMatch(BaseModel):
    """Outcome of matching a cart and an address to a pallet lane."""

    model_config = ConfigDict(frozen=True)

    pickup_zone_id: Optional[str] = None
    pickup_zone_name: Optional[str] = None
    delivery_zone_id: Optional[str] = None
    delivery_zone_name: Optional[str] = None
    available_delivery_zones: List[DeliveryZoneOption] = []

    @property
    def is_resolved(self) -> bool:
        return self.pickup_zone_id is not None and self.delivery_zone_id is not None
