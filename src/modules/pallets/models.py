"""Pallet model.

Business rules implemented:
- A pallet carries bottles from one pickup zone to one delivery zone.
- Only one routable (OPEN / CONSOLIDATING) pallet exists per zone pair.
- Status moves forward only (see ``VALID_TRANSITIONS``).
- Fill is never stored; ``completion_notified_at`` latches the one-time
  payment notification hand-off.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.pallets.constants import ROUTABLE_STATES, VALID_TRANSITIONS, PalletStatus
from modules.pallets.exceptions import InvalidCompletionRules
from modules.pallets.rules import parse_rules
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


def default_bottle_capacity() -> int:
    return settings.DEFAULT_PALLET_CAPACITY


class Pallet(DomainEventMixin, BaseModel):
    """Pallet aggregate root."""

    name = models.CharField(max_length=255)
    pickup_zone = models.ForeignKey(
        "zones.Zone",
        on_delete=models.PROTECT,
        related_name="pickup_pallets",
    )
    delivery_zone = models.ForeignKey(
        "zones.Zone",
        on_delete=models.PROTECT,
        related_name="delivery_pallets",
    )
    bottle_capacity = models.PositiveIntegerField(
        default=default_bottle_capacity,
        validators=[MinValueValidator(1)],
    )
    completion_rules = models.JSONField(null=True, blank=True, default=None)
    status = models.CharField(
        max_length=20,
        choices=PalletStatus.choices,
        default=PalletStatus.OPEN,
    )
    completed_at = models.DateTimeField(null=True, blank=True, default=None)
    completion_notified_at = models.DateTimeField(null=True, blank=True, default=None)
    payment_deadline = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "pallets"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="pallets_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["pickup_zone", "delivery_zone"],
                condition=models.Q(status__in=sorted(ROUTABLE_STATES)),
                name="pallets_one_routable_per_lane",
            ),
        ]

    # ------------------------------------------------------------------
    # State machine helpers
    # ------------------------------------------------------------------

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    @property
    def is_routable(self) -> bool:
        return self.status in ROUTABLE_STATES

    @property
    def is_notified(self) -> bool:
        return self.completion_notified_at is not None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        try:
            parse_rules(self.completion_rules)
        except InvalidCompletionRules as exc:
            raise ValidationError({"completion_rules": str(exc)}) from exc
        if self.pickup_zone_id and self.pickup_zone_id == self.delivery_zone_id:
            raise ValidationError(
                {"delivery_zone": "Pickup and delivery zone must differ."}
            )

    def __str__(self) -> str:
        return f"{self.name} ({self.status})"
