"""Six-bottle rule for checkout.

Bottles are sold in cases of six per producer.  Producers that belong to
the same producer group may be mixed to fill a case, so quantities are
summed per group (``group:<id>``) or, for ungrouped producers, per
producer (``producer:<id>``).  Every such bucket must hold a multiple of
six.

An empty cart is valid.  Lines whose wine cannot be resolved are skipped
with a warning; the orchestrator rejects unknown wines separately.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from modules.reservations.constants import BOTTLES_PER_CASE

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartWine:
    """What the rule needs to know about a wine in the cart."""

    wine_id: str
    producer_id: Optional[str]
    producer_name: str = "Unknown producer"
    group_id: Optional[str] = None
    group_name: Optional[str] = None
    pickup_zone_id: Optional[str] = None


@dataclass(frozen=True)
class CartLine:
    wine_id: str
    quantity: int


class ProducerValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    producer_or_group_id: str
    name: str
    producer_ids: List[str]
    required: int
    actual: int
    needed: int
    is_valid: bool
    group_id: Optional[str] = None
    group_name: Optional[str] = None


class SixBottleValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: List[str] = []
    producer_validations: List[ProducerValidation] = []


def required_bottles(actual: int) -> int:
    """Next multiple of six at or above ``actual`` (at least one case)."""
    return max(BOTTLES_PER_CASE, math.ceil(actual / BOTTLES_PER_CASE) * BOTTLES_PER_CASE)


class _Bucket:
    def __init__(self, key: str, group_id: Optional[str], group_name: Optional[str]) -> None:
        self.key = key
        self.group_id = group_id
        self.group_name = group_name
        self.quantity = 0
        self.producer_ids: List[str] = []
        self.producer_names: List[str] = []

    def add(self, wine: CartWine, quantity: int) -> None:
        self.quantity += quantity
        if wine.producer_id not in self.producer_ids:
            self.producer_ids.append(wine.producer_id)
        if wine.producer_name not in self.producer_names:
            self.producer_names.append(wine.producer_name)

    def validate(self) -> ProducerValidation:
        required = required_bottles(self.quantity)
        is_valid = self.quantity % BOTTLES_PER_CASE == 0
        return ProducerValidation(
            producer_or_group_id=self.key,
            name=self.group_name or " + ".join(self.producer_names),
            producer_ids=list(self.producer_ids),
            required=required,
            actual=self.quantity,
            needed=0 if is_valid else required - self.quantity,
            is_valid=is_valid,
            group_id=self.group_id,
            group_name=self.group_name,
        )


def validate_six_bottle_rule(
    lines: Iterable[CartLine], wines: Mapping[str, CartWine]
) -> SixBottleValidation:
    buckets: Dict[str, _Bucket] = {}
    for line in lines:
        wine = wines.get(str(line.wine_id))
        if wine is None:
            logger.warning("checkout.six_bottle.wine_not_found", wine_id=str(line.wine_id))
            continue
        if not wine.producer_id:
            logger.warning("checkout.six_bottle.wine_without_producer", wine_id=wine.wine_id)
            continue

        if wine.group_id:
            key = f"group:{wine.group_id}"
        else:
            key = f"producer:{wine.producer_id}"
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _Bucket(key, wine.group_id, wine.group_name)
        bucket.add(wine, line.quantity)

    validations = [bucket.validate() for bucket in buckets.values()]
    errors = [
        f"{v.name}: {v.actual} bottles. Add {v.needed} more for {v.required} total."
        for v in validations
        if not v.is_valid
    ]
    result = SixBottleValidation(
        is_valid=all(v.is_valid for v in validations),
        errors=errors,
        producer_validations=validations,
    )
    logger.info(
        "checkout.six_bottle.validated",
        is_valid=result.is_valid,
        buckets=len(validations),
        invalid=len(errors),
    )
    return result
