"""Event handlers for Reservations domain events."""

from __future__ import annotations

import structlog

from modules.reservations.events import ReservationCreated
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class ReservationCreatedHandler(IEventHandler[ReservationCreated]):
    def handle(self, event: ReservationCreated) -> None:
        logger.info(
            "reservation.event.created",
            reservation_id=str(event.aggregate_id),
            pallet_id=event.pallet_id,
            bottles=event.bottles,
        )


reservation_created_handler = ReservationCreatedHandler()
