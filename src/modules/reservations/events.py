"""Domain events for the Reservations bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class ReservationCreated(DomainEvent):
    """Raised when checkout persists a reservation.

    Consumed outside this service (confirmation e-mail, loyalty points).
    """

    topic: ClassVar[str] = "reservations"

    pallet_id: Optional[str] = None
    delivery_zone_id: Optional[str] = None
    user_id: Optional[str] = None
    bottles: int = 0
