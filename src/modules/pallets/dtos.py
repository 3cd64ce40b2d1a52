"""Pallet DTOs for the Service Layer (Pydantic v2, immutable)."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.pallets.rules import dump_rules, parse_rules


class CreatePalletDTO(BaseModel):
    """Admin request to open a pallet explicitly.

    ``completion_rules`` is validated and normalised to the rule tree
    (the group format is converted).
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=255)
    pickup_zone_id: str
    delivery_zone_id: str
    bottle_capacity: Optional[int] = Field(default=None, ge=1)
    completion_rules: Optional[dict] = None

    @field_validator("completion_rules", mode="before")
    @classmethod
    def normalise_rules(cls, v: Any) -> Optional[dict]:
        return dump_rules(parse_rules(v))


class UpdateCompletionRulesDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    completion_rules: Optional[dict] = None

    @field_validator("completion_rules", mode="before")
    @classmethod
    def normalise_rules(cls, v: Any) -> Optional[dict]:
        return dump_rules(parse_rules(v))
