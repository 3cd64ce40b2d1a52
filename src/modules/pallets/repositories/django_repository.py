"""Django ORM implementation of the Pallet repository.

Reservation lines are read with a single ``values()`` query joined
through wine and producer, so aggregating a page of pallets costs one
query regardless of how many reservations they hold.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from modules.core.models import OutboxEvent
from modules.pallets.aggregation import PalletLine
from modules.pallets.constants import ROUTABLE_STATES, PalletStatus
from modules.pallets.models import Pallet
from modules.pallets.repositories.interfaces import IPalletRepository
from modules.reservations.constants import ACTIVE_STATUSES
from modules.reservations.models import ReservationItem
from modules.zones.models import Zone

logger = structlog.get_logger(__name__)

_LINE_FIELDS = (
    "id",
    "quantity",
    "producer_approved_quantity",
    "reservation_id",
    "reservation__pallet_id",
    "reservation__status",
    "wine_id",
    "wine__deleted_at",
    "wine__base_price_cents",
    "wine__cost_amount",
    "wine__cost_currency",
    "wine__exchange_rate",
    "wine__alcohol_tax_cents",
    "wine__producer_id",
    "wine__producer__name",
    "wine__producer__pickup_zone_id",
    "wine__producer__moq_bottles",
)


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _to_line(row: Dict[str, Any]) -> PalletLine:
    quantity = row["producer_approved_quantity"]
    if quantity is None:
        quantity = row["quantity"]
    if row["wine__deleted_at"] is not None:
        # a soft-deleted wine counts as missing
        row = {key: (None if key.startswith("wine") else value) for key, value in row.items()}
    return PalletLine(
        pallet_id=str(row["reservation__pallet_id"]),
        reservation_id=str(row["reservation_id"]),
        reservation_status=row["reservation__status"],
        quantity=quantity,
        item_id=str(row["id"]),
        wine_id=_str_or_none(row["wine_id"]),
        producer_id=_str_or_none(row["wine__producer_id"]),
        producer_name=row["wine__producer__name"],
        pickup_zone_id=_str_or_none(row["wine__producer__pickup_zone_id"]),
        moq_bottles=row["wine__producer__moq_bottles"],
        base_price_cents=row["wine__base_price_cents"],
        cost_amount=row["wine__cost_amount"],
        cost_currency=row["wine__cost_currency"],
        exchange_rate=row["wine__exchange_rate"],
        alcohol_tax_cents=row["wine__alcohol_tax_cents"],
    )


class PalletDjangoRepository(IPalletRepository):
    """Concrete Pallet repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Pallet]:
        try:
            return (
                Pallet.objects.select_related("pickup_zone", "delivery_zone")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Pallet]:
        """List pallets with optional Django ORM look-ups.

        Examples of valid filters::

            {"status": "OPEN"}
            {"pickup_zone_id": "..."}
        """
        queryset = Pallet.objects.select_related("pickup_zone", "delivery_zone")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Pallet) -> Pallet:
        """Persist a pallet and write its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.record(event)
        entity.clear_domain_events()

        logger.info("pallet.saved", pallet_id=str(entity.id), event_count=len(events))
        return entity

    def get_for_update(self, id: str) -> Optional[Pallet]:
        try:
            return Pallet.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_routable_for_lane(
        self, pickup_zone_id: str, delivery_zone_id: str
    ) -> Optional[Pallet]:
        return (
            Pallet.objects.filter(
                pickup_zone_id=pickup_zone_id,
                delivery_zone_id=delivery_zone_id,
                status__in=ROUTABLE_STATES,
            )
            .order_by("created_at")
            .first()
        )

    def create_for_lane(self, pickup_zone_id: str, delivery_zone_id: str) -> Pallet:
        zones = {
            str(z.id): z.name
            for z in Zone.objects.filter(id__in=[pickup_zone_id, delivery_zone_id])
        }
        name = (
            f"{zones.get(str(pickup_zone_id), 'Pickup')} to "
            f"{zones.get(str(delivery_zone_id), 'Delivery')}"
        )
        try:
            with transaction.atomic():
                pallet = Pallet.objects.create(
                    name=name,
                    pickup_zone_id=pickup_zone_id,
                    delivery_zone_id=delivery_zone_id,
                    status=PalletStatus.OPEN,
                )
        except IntegrityError:
            existing = self.get_routable_for_lane(pickup_zone_id, delivery_zone_id)
            if existing is None:
                raise
            logger.info("pallet.lane_race_lost", pallet_id=str(existing.id))
            return existing

        logger.info(
            "pallet.created",
            pallet_id=str(pallet.id),
            pickup_zone_id=str(pickup_zone_id),
            delivery_zone_id=str(delivery_zone_id),
        )
        return pallet

    def list_lines(self, pallet_ids: Iterable[str]) -> List[PalletLine]:
        ids = [str(i) for i in pallet_ids]
        if not ids:
            return []
        rows = ReservationItem.objects.filter(
            reservation__pallet_id__in=ids,
            reservation__status__in=ACTIVE_STATUSES,
        ).values(*_LINE_FIELDS)
        return [_to_line(row) for row in rows]

    def list_unnotified(self) -> List[Pallet]:
        return list(
            Pallet.objects.filter(
                completion_notified_at__isnull=True,
                status__in=ROUTABLE_STATES,
            )
        )
