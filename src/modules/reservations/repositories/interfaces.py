"""Reservation repository interface.

Extends ``IRepository[Reservation]`` with atomic creation of a
reservation and its items, idempotency-key look-up and the bulk move to
``pending_payment`` when a pallet completes.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.reservations.models import Reservation


class IReservationRepository(IRepository["Reservation"]):
    """Repository contract for the Reservation aggregate."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Reservation:
        """Create a reservation with its items atomically.

        ``data`` must include ``items`` (list of dicts with ``wine_id`` and
        ``quantity``) and may include ``user_id``, ``delivery_zone_id``,
        ``pallet_id``, ``status``, address fields and ``idempotency_key``.
        """

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Reservation]:
        """Retrieve a reservation by its idempotency key."""

    @abstractmethod
    def move_to_pending_payment(
        self, pallet_id: str, deadline: datetime, from_statuses: Iterable[str]
    ) -> int:
        """Set ``pending_payment`` + ``payment_deadline`` on a pallet's reservations.

        Only reservations currently in ``from_statuses`` are touched.
        Returns the number of rows updated.
        """
