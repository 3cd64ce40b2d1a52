"""Django ORM implementation of the Reservation repository.

All write operations run inside ``transaction.atomic()`` so a
reservation is never persisted without its items.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.reservations.constants import ReservationStatus
from modules.reservations.models import Reservation, ReservationItem
from modules.reservations.repositories.interfaces import IReservationRepository

logger = structlog.get_logger(__name__)


class ReservationDjangoRepository(IReservationRepository):
    """Concrete Reservation repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Reservation:
        reservation = Reservation(
            user_id=data.get("user_id"),
            delivery_zone_id=data.get("delivery_zone_id"),
            pallet_id=data.get("pallet_id"),
            status=data.get("status", ReservationStatus.PENDING_PAYMENT),
            postcode=data.get("postcode", ""),
            city=data.get("city", ""),
            country_code=data.get("country_code", ""),
            idempotency_key=data.get("idempotency_key"),
        )
        reservation.save()

        items = data.get("items", [])
        for item_data in items:
            ReservationItem(
                reservation=reservation,
                wine_id=item_data["wine_id"],
                quantity=item_data["quantity"],
            ).save()

        logger.info(
            "reservation.created",
            reservation_id=str(reservation.id),
            item_count=len(items),
        )
        return reservation

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Reservation]:
        try:
            return (
                Reservation.objects.select_related("pallet", "delivery_zone")
                .prefetch_related("items__wine")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Reservation]:
        """List reservations with optional filters.

        Supported filter keys include ``status``, ``pallet_id`` and
        ``user_id``.
        """
        queryset = Reservation.objects.select_related(
            "pallet", "delivery_zone"
        ).prefetch_related("items__wine")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def get_by_idempotency_key(self, key: str) -> Optional[Reservation]:
        return (
            Reservation.objects.select_related("pallet", "delivery_zone")
            .prefetch_related("items__wine")
            .filter(idempotency_key=key)
            .first()
        )

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Reservation) -> Reservation:
        """Persist a reservation and write its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.record(event)
        entity.clear_domain_events()

        logger.info(
            "reservation.saved",
            reservation_id=str(entity.id),
            event_count=len(events),
        )
        return entity

    # ------------------------------------------------------------------
    # Bulk transitions
    # ------------------------------------------------------------------

    @transaction.atomic
    def move_to_pending_payment(
        self, pallet_id: str, deadline: datetime, from_statuses: Iterable[str]
    ) -> int:
        updated = Reservation.objects.filter(
            pallet_id=pallet_id,
            status__in=list(from_statuses),
        ).update(
            status=ReservationStatus.PENDING_PAYMENT,
            payment_deadline=deadline,
            updated_at=timezone.now(),
        )
        # Reservations already awaiting payment get the pallet deadline too.
        Reservation.objects.filter(
            pallet_id=pallet_id,
            status=ReservationStatus.PENDING_PAYMENT,
            payment_deadline__isnull=True,
        ).update(payment_deadline=deadline, updated_at=timezone.now())

        logger.info(
            "reservation.moved_to_pending_payment",
            pallet_id=str(pallet_id),
            updated=updated,
        )
        return updated
