"""Reservation and ReservationItem models.

Business rules implemented:
- A reservation belongs to one delivery zone and, once routed, one pallet.
- ``idempotency_key`` makes checkout retries return the first reservation.
- An item's ``producer_approved_quantity`` never exceeds the requested
  ``quantity`` (model validation + DB check constraint).
- ``effective_quantity`` is the approved quantity when set, else the
  requested one.
- ``wine`` is ``SET_NULL`` so a hard-deleted wine leaves a dangling line,
  which pallet aggregation skips.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.reservations.constants import ACTIVE_STATUSES, TERMINAL_STATES, ReservationStatus
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Reservation(DomainEventMixin, BaseModel):
    """Reservation aggregate root.

    ``idempotency_key`` is nullable: only reservations created through the
    public checkout carry a client-provided key.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reservations",
    )
    delivery_zone = models.ForeignKey(
        "zones.Zone",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reservations",
    )
    pallet = models.ForeignKey(
        "pallets.Pallet",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reservations",
    )
    status = models.CharField(
        max_length=30,
        choices=ReservationStatus.choices,
        default=ReservationStatus.PENDING_PAYMENT,
    )
    postcode = models.CharField(max_length=20, blank=True, default="")
    city = models.CharField(max_length=120, blank=True, default="")
    country_code = models.CharField(max_length=2, blank=True, default="")
    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )
    payment_deadline = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "reservations"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["pallet", "status"], name="reservations_pallet_idx"),
            models.Index(fields=["status"], name="reservations_status_idx"),
        ]

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def total_bottles(self) -> int:
        return sum(item.effective_quantity for item in self.items.all())

    def __str__(self) -> str:
        return f"Reservation {self.id} ({self.status})"


class ReservationItem(BaseModel):
    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name="items",
    )
    wine = models.ForeignKey(
        "catalog.Wine",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reservation_items",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    producer_approved_quantity = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        db_table = "reservation_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="reservation_items_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(producer_approved_quantity__isnull=True)
                | models.Q(producer_approved_quantity__lte=models.F("quantity")),
                name="reservation_items_approved_lte_requested",
            ),
        ]

    @property
    def effective_quantity(self) -> int:
        if self.producer_approved_quantity is not None:
            return self.producer_approved_quantity
        return self.quantity

    def clean(self) -> None:
        super().clean()
        if (
            self.producer_approved_quantity is not None
            and self.quantity is not None
            and self.producer_approved_quantity > self.quantity
        ):
            raise ValidationError(
                {
                    "producer_approved_quantity": (
                        "Approved quantity cannot exceed the requested quantity."
                    )
                }
            )

    def save(self, *args, **kwargs) -> None:
        self.clean()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.quantity} x {self.wine_id} ({self.reservation_id})"
