"""Checkout service layer (Use Cases).

Turns a cart into a reservation on a pallet:

1. Idempotency: a repeated ``idempotency_key`` returns the first reservation.
2. Six-bottle rule (fail closed): ``SixBottleRuleViolation``.
3. Zones: the cart's single pickup zone and the address's delivery zone
   (``MixedPickupZones`` / ``ZoneUnresolved`` unless overridden).
4. Pallet of the lane, created lazily.
5. Reservation + items persisted atomically as ``pending_payment``; the
   pallet moves OPEN -> CONSOLIDATING; ``ReservationCreated`` is written
   to the outbox.
6. After commit: the event is published and the pallet's completion is
   checked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import IntegrityError, transaction

from modules.catalog.exceptions import WineNotFound
from modules.pallets.exceptions import PalletNotRoutable
from modules.reservations.constants import ReservationStatus
from modules.reservations.events import ReservationCreated
from modules.reservations.exceptions import (
    EmptyCart,
    ReservationNotFound,
    SixBottleRuleViolation,
)
from modules.reservations.validation import (
    CartLine,
    CartWine,
    SixBottleValidation,
    validate_six_bottle_rule,
)
from modules.zones.dtos import DeliveryAddress, ZoneMatch
from modules.zones.exceptions import ZoneUnresolved
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.catalog.models import Wine
    from modules.catalog.repositories.interfaces import IWineRepository
    from modules.pallets.models import Pallet
    from modules.pallets.services import PalletService
    from modules.reservations.dtos import (
        CheckoutLineDTO,
        ConfirmCheckoutDTO,
        ValidateCartDTO,
    )
    from modules.reservations.models import Reservation
    from modules.reservations.repositories.interfaces import IReservationRepository
    from modules.zones.matching import ZoneMatcher
    from modules.zones.repositories.interfaces import IZoneRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


def to_cart_wine(wine: Wine) -> CartWine:
    producer = wine.producer
    group = producer.group if producer is not None else None
    return CartWine(
        wine_id=str(wine.id),
        producer_id=str(producer.id) if producer is not None else None,
        producer_name=producer.name if producer is not None else "Unknown producer",
        group_id=str(group.id) if group is not None else None,
        group_name=group.name if group is not None else None,
        pickup_zone_id=(
            str(producer.pickup_zone_id)
            if producer is not None and producer.pickup_zone_id
            else None
        ),
    )


class CheckoutService:
    """Application service for checkout use-cases.

    Receives repositories, the zone matcher and the pallet service via
    constructor injection (DIP).
    """

    def __init__(
        self,
        reservation_repository: IReservationRepository,
        wine_repository: IWineRepository,
        zone_repository: IZoneRepository,
        zone_matcher: ZoneMatcher,
        pallet_service: PalletService,
        bus: Optional[IEventBus] = None,
    ) -> None:
        self._reservation_repo = reservation_repository
        self._wine_repo = wine_repository
        self._zone_repo = zone_repository
        self._matcher = zone_matcher
        self._pallets = pallet_service
        self._bus = bus or event_bus

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_reservation(self, id: str) -> Reservation:
        """Raises:
        ReservationNotFound: if the reservation does not exist.
        """
        reservation = self._reservation_repo.get_by_id(id)
        if not reservation:
            raise ReservationNotFound(f"Reservation {id} not found.")
        return reservation

    def list_reservations(self, filters: Optional[Dict[str, Any]] = None) -> List[Reservation]:
        return self._reservation_repo.list(filters)

    def validate_cart(self, dto: ValidateCartDTO) -> SixBottleValidation:
        """Six-bottle check alone; unknown wines are skipped."""
        wines = self._wine_repo.get_many(line.wine_id for line in dto.lines)
        cart_wines = {wine_id: to_cart_wine(wine) for wine_id, wine in wines.items()}
        return validate_six_bottle_rule(self._cart_lines(dto.lines), cart_wines)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def confirm(self, dto: ConfirmCheckoutDTO) -> Reservation:
        """Validate a cart and persist it as a reservation on a pallet.

        Raises:
            EmptyCart: no lines.
            WineNotFound: a line references an unknown or deleted wine.
            SixBottleRuleViolation: a producer / group is not a multiple of six.
            MixedPickupZones: the cart spans several pickup zones.
            ZoneUnresolved: no pickup or delivery zone, and no override.
            PalletNotFound: the ``pallet_id`` override does not exist.
            PalletNotRoutable: the ``pallet_id`` override is shipped or delivered.
        """
        log = logger.bind(user_id=dto.user_id, idempotency_key=dto.idempotency_key)
        log.info("checkout.started", lines=len(dto.lines), bottles=dto.total_bottles)

        # 0. Idempotency check
        if dto.idempotency_key:
            existing = self._reservation_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                log.info("checkout.idempotency_hit", reservation_id=str(existing.id))
                return existing

        if not dto.lines:
            raise EmptyCart("Cart is empty.")

        # 1. Resolve wines; every line must point at an alive wine
        wines = self._wine_repo.get_many(line.wine_id for line in dto.lines)
        missing = sorted({line.wine_id for line in dto.lines} - set(wines))
        if missing:
            log.warning("checkout.wine_not_found", wine_ids=missing)
            raise WineNotFound(f"Wine(s) not found: {', '.join(missing)}.")
        cart_wines = {wine_id: to_cart_wine(wine) for wine_id, wine in wines.items()}

        # 2. Six-bottle rule
        validation = validate_six_bottle_rule(self._cart_lines(dto.lines), cart_wines)
        if not validation.is_valid:
            log.warning("checkout.six_bottle_violation", errors=validation.errors)
            raise SixBottleRuleViolation(validation)

        # 3. + 4. Zones and pallet
        pallet = self._resolve_pallet(dto, list(cart_wines.values()))
        log = log.bind(pallet_id=str(pallet.id))

        # 5. Persist
        try:
            reservation, event = self._persist(dto, pallet)
        except IntegrityError:
            if not dto.idempotency_key:
                raise
            existing = self._reservation_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing is None:
                raise
            log.info("checkout.idempotency_race", reservation_id=str(existing.id))
            return existing

        # 6. After commit
        pallet_id = str(pallet.id)
        transaction.on_commit(lambda: self._after_commit(event, pallet_id))

        log.info("checkout.confirmed", reservation_id=str(reservation.id))
        return self._reservation_repo.get_by_id(str(reservation.id)) or reservation

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _cart_lines(lines: List[CheckoutLineDTO]) -> List[CartLine]:
        return [CartLine(wine_id=str(line.wine_id), quantity=line.quantity) for line in lines]

    def _resolve_pallet(self, dto: ConfirmCheckoutDTO, cart_wines: List[CartWine]) -> Pallet:
        if dto.pallet_id:
            return self._override_pallet(dto.pallet_id, cart_wines)

        address = DeliveryAddress(
            postcode=dto.postcode, city=dto.city, country_code=dto.country_code
        )
        match = self._matcher.match((w.pickup_zone_id for w in cart_wines), address)

        delivery_zone_id = match.delivery_zone_id
        if dto.delivery_zone_id:
            override = self._zone_repo.get_by_id(dto.delivery_zone_id)
            if override is None:
                raise ZoneUnresolved(
                    f"Delivery zone {dto.delivery_zone_id} does not exist.", match=match
                )
            delivery_zone_id = str(override.id)

        if match.pickup_zone_id is None or delivery_zone_id is None:
            logger.warning(
                "checkout.zone_unresolved",
                pickup_zone_id=match.pickup_zone_id,
                delivery_zone_id=delivery_zone_id,
                candidates=len(match.available_delivery_zones),
            )
            raise ZoneUnresolved(self._unresolved_message(match), match=match)

        return self._pallets.resolve_or_create(match.pickup_zone_id, delivery_zone_id)

    def _override_pallet(self, pallet_id: str, cart_wines: List[CartWine]) -> Pallet:
        """A manually chosen pallet must still be open and share the cart's pickup zone."""
        pickup_zone_id = self._matcher.resolve_pickup_zone(w.pickup_zone_id for w in cart_wines)
        pallet = self._pallets.get_pallet(pallet_id)
        if not pallet.is_routable:
            logger.warning("checkout.pallet_not_routable", pallet_id=pallet_id, status=pallet.status)
            raise PalletNotRoutable(
                f"Pallet {pallet_id} is {pallet.status} and no longer takes reservations."
            )
        if pickup_zone_id != str(pallet.pickup_zone_id):
            logger.warning(
                "checkout.pallet_pickup_mismatch",
                pallet_id=pallet_id,
                pickup_zone_id=pickup_zone_id,
                pallet_pickup_zone_id=str(pallet.pickup_zone_id),
            )
            raise ZoneUnresolved(
                f"Pallet {pallet_id} does not collect from the cart's pickup zone.",
                match=ZoneMatch(pickup_zone_id=pickup_zone_id),
            )
        return pallet

    @staticmethod
    def _unresolved_message(match: ZoneMatch) -> str:
        if match.pickup_zone_id is None:
            return "The wines in the cart have no pickup zone."
        return "No delivery zone covers this address; choose one manually."

    @transaction.atomic
    def _persist(self, dto: ConfirmCheckoutDTO, pallet: Pallet) -> tuple[Reservation, ReservationCreated]:
        reservation = self._reservation_repo.create(
            {
                "user_id": dto.user_id,
                "delivery_zone_id": pallet.delivery_zone_id,
                "pallet_id": pallet.id,
                "status": ReservationStatus.PENDING_PAYMENT,
                "postcode": dto.postcode,
                "city": dto.city,
                "country_code": dto.country_code,
                "idempotency_key": dto.idempotency_key,
                "items": [
                    {"wine_id": line.wine_id, "quantity": line.quantity}
                    for line in dto.lines
                ],
            }
        )
        self._pallets.start_consolidating(pallet)

        event = ReservationCreated(
            aggregate_id=reservation.id,
            pallet_id=str(pallet.id),
            delivery_zone_id=str(pallet.delivery_zone_id),
            user_id=dto.user_id,
            bottles=dto.total_bottles,
        )
        reservation.add_domain_event(event)
        self._reservation_repo.save(reservation)
        return reservation, event

    def _after_commit(self, event: ReservationCreated, pallet_id: str) -> None:
        self._bus.publish(event)
        self._pallets.check_completion(pallet_id)
