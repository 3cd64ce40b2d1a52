"""Pallet service layer (Use Cases).

Resolves the pallet of a zone lane, computes live fill and detects the
moment a pallet becomes complete.

Completion is recomputed on every check; only the payment-notification
hand-off is latched.  ``check_completion`` locks the pallet row and
fires at most once per pallet: it stamps ``completion_notified_at``,
moves the pallet's reservations to ``pending_payment`` with a deadline,
writes a ``PalletCompleted`` event to the outbox and publishes it on the
in-process bus.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.catalog.fx import ExchangeRateProvider
from modules.pallets.aggregation import PalletAggregator, PalletFill
from modules.pallets.constants import PalletStatus
from modules.pallets.events import PalletCompleted, PalletStatusChanged
from modules.pallets.exceptions import (
    InvalidPalletStatus,
    PalletAlreadyExists,
    PalletNotFound,
)
from modules.pallets.models import Pallet
from modules.reservations.constants import AWAITING_PAYMENT_ON_COMPLETION
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.pallets.dtos import CreatePalletDTO, UpdateCompletionRulesDTO
    from modules.pallets.repositories.interfaces import IPalletRepository
    from modules.reservations.repositories.interfaces import IReservationRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CompletionCheck:
    pallet_id: str
    fill: PalletFill
    triggered: bool
    already_notified: bool = False


class PalletService:
    """Application service for Pallet use-cases.

    Receives repositories, the aggregator (or the exchange-rate provider it
    should use) and the event bus via constructor injection (DIP).
    """

    def __init__(
        self,
        pallet_repository: IPalletRepository,
        reservation_repository: IReservationRepository,
        aggregator: Optional[PalletAggregator] = None,
        bus: Optional[IEventBus] = None,
        rate_provider: Optional[ExchangeRateProvider] = None,
    ) -> None:
        self._pallet_repo = pallet_repository
        self._reservation_repo = reservation_repository
        # wines without a stored rate are costed at the provider's rate
        self._aggregator = aggregator or PalletAggregator(
            rate_provider=rate_provider or ExchangeRateProvider()
        )
        self._bus = bus or event_bus

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_pallet(self, id: str) -> Pallet:
        """Raises:
        PalletNotFound: if the pallet does not exist.
        """
        pallet = self._pallet_repo.get_by_id(id)
        if not pallet:
            raise PalletNotFound(f"Pallet {id} not found.")
        return pallet

    def list_pallets(self, filters: Optional[Dict[str, Any]] = None) -> List[Pallet]:
        return self._pallet_repo.list(filters)

    def get_fill(self, pallet: Pallet) -> PalletFill:
        lines = self._pallet_repo.list_lines([str(pallet.id)])
        return self._aggregator.aggregate_one(pallet, lines)

    def get_fills(self, pallets: List[Pallet]) -> Dict[str, PalletFill]:
        """Fill of many pallets from one line query."""
        if not pallets:
            return {}
        lines = self._pallet_repo.list_lines([str(p.id) for p in pallets])
        return self._aggregator.aggregate(pallets, lines)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_pallet(self, dto: CreatePalletDTO) -> Pallet:
        """Open a pallet explicitly (admin).

        Raises:
            PalletAlreadyExists: the lane already has a routable pallet.
        """
        pallet = Pallet(
            name=dto.name,
            pickup_zone_id=dto.pickup_zone_id,
            delivery_zone_id=dto.delivery_zone_id,
            completion_rules=dto.completion_rules,
        )
        if dto.bottle_capacity is not None:
            pallet.bottle_capacity = dto.bottle_capacity
        try:
            with transaction.atomic():
                pallet = self._pallet_repo.save(pallet)
        except IntegrityError as exc:
            raise PalletAlreadyExists(
                "This pickup/delivery lane already has an open pallet."
            ) from exc
        logger.info("pallet.created", pallet_id=str(pallet.id), source="admin")
        return pallet

    @transaction.atomic
    def update_completion_rules(self, pallet_id: str, dto: UpdateCompletionRulesDTO) -> Pallet:
        """Raises:
        PalletNotFound: pallet does not exist.
        """
        pallet = self._pallet_repo.get_for_update(str(pallet_id))
        if not pallet:
            raise PalletNotFound(f"Pallet {pallet_id} not found.")
        pallet.completion_rules = dto.completion_rules
        self._pallet_repo.save(pallet)
        logger.info("pallet.rules_updated", pallet_id=str(pallet_id))
        return pallet

    def resolve_or_create(self, pickup_zone_id: str, delivery_zone_id: str) -> Pallet:
        """The routable pallet of a zone lane, created lazily on first use."""
        pallet = self._pallet_repo.get_routable_for_lane(pickup_zone_id, delivery_zone_id)
        if pallet is not None:
            return pallet
        return self._pallet_repo.create_for_lane(pickup_zone_id, delivery_zone_id)

    @transaction.atomic
    def advance_status(self, pallet_id: str, new_status: str) -> Pallet:
        """Move a pallet forward in its lifecycle.

        Raises:
            PalletNotFound: pallet does not exist.
            InvalidPalletStatus: the transition is not allowed.
        """
        pallet = self._pallet_repo.get_for_update(str(pallet_id))
        if not pallet:
            raise PalletNotFound(f"Pallet {pallet_id} not found.")

        log = logger.bind(
            pallet_id=str(pallet_id),
            current_status=pallet.status,
            new_status=new_status,
        )
        if not pallet.can_transition_to(new_status):
            log.warning("pallet.invalid_transition")
            raise InvalidPalletStatus(
                f"Cannot transition pallet from {pallet.status} to {new_status}."
            )

        old_status = pallet.status
        pallet.status = new_status
        pallet.add_domain_event(
            PalletStatusChanged(
                aggregate_id=pallet.id, old_status=old_status, new_status=new_status
            )
        )
        self._pallet_repo.save(pallet)
        log.info("pallet.status_updated")
        return pallet

    def start_consolidating(self, pallet: Pallet) -> Pallet:
        """OPEN -> CONSOLIDATING on the first reservation; no-op otherwise."""
        if pallet.status != PalletStatus.OPEN:
            return pallet
        try:
            return self.advance_status(str(pallet.id), PalletStatus.CONSOLIDATING)
        except InvalidPalletStatus:
            # Advanced concurrently; re-read the current state.
            return self.get_pallet(str(pallet.id))

    def check_completion(self, pallet_id: str) -> CompletionCheck:
        """Evaluate a pallet and fire the completion hand-off at most once.

        Raises:
            PalletNotFound: pallet does not exist.
        """
        pallet = self.get_pallet(str(pallet_id))
        log = logger.bind(pallet_id=str(pallet.id))
        fill = self.get_fill(pallet)
        log.info(
            "pallet.completion_checked",
            current_bottles=fill.current_bottles,
            capacity=fill.capacity,
            profit_cents_ex_vat=fill.profit_cents_ex_vat,
            is_complete=fill.is_complete,
        )
        if not fill.is_complete:
            return CompletionCheck(pallet_id=str(pallet.id), fill=fill, triggered=False)

        event = self._mark_completed(str(pallet.id), fill)
        if event is None:
            return CompletionCheck(
                pallet_id=str(pallet.id), fill=fill, triggered=False, already_notified=True
            )

        self._bus.publish(event)
        log.info("pallet.completed", payment_deadline=str(event.payment_deadline))
        return CompletionCheck(pallet_id=str(pallet.id), fill=fill, triggered=True)

    @transaction.atomic
    def _mark_completed(self, pallet_id: str, fill: PalletFill) -> Optional[PalletCompleted]:
        pallet = self._pallet_repo.get_for_update(pallet_id)
        if pallet is None:
            raise PalletNotFound(f"Pallet {pallet_id} not found.")
        if pallet.completion_notified_at is not None:
            logger.info("pallet.completion_already_notified", pallet_id=pallet_id)
            return None

        now = timezone.now()
        deadline = now + timedelta(days=settings.PAYMENT_DEADLINE_DAYS)
        moved = self._reservation_repo.move_to_pending_payment(
            pallet_id, deadline, AWAITING_PAYMENT_ON_COMPLETION
        )

        pallet.completed_at = pallet.completed_at or now
        pallet.payment_deadline = deadline
        pallet.completion_notified_at = now
        event = PalletCompleted(
            aggregate_id=pallet.id,
            current_bottles=fill.current_bottles,
            capacity=fill.capacity,
            profit_cents_ex_vat=fill.profit_cents_ex_vat,
            payment_deadline=deadline,
            reservations_awaiting_payment=moved,
        )
        pallet.add_domain_event(event)
        self._pallet_repo.save(pallet)
        return event

    def reconcile_completion(self) -> int:
        """Check every pallet not yet notified; returns how many completed now."""
        triggered = 0
        for pallet in self._pallet_repo.list_unnotified():
            if self.check_completion(str(pallet.id)).triggered:
                triggered += 1
        logger.info("pallet.reconciled", triggered=triggered)
        return triggered
