"""Celery tasks for pallets."""

from __future__ import annotations

import structlog
from celery import shared_task

from modules.pallets.repositories.django_repository import PalletDjangoRepository
from modules.pallets.services import PalletService
from modules.reservations.repositories.django_repository import ReservationDjangoRepository

logger = structlog.get_logger(__name__)


@shared_task(name="pallets.reconcile_completion")
def reconcile_completion() -> int:
    """Scheduled safety net: catch completions no checkout has triggered."""
    service = PalletService(
        pallet_repository=PalletDjangoRepository(),
        reservation_repository=ReservationDjangoRepository(),
    )
    return service.reconcile_completion()


@shared_task(name="pallets.check_completion")
def check_completion(pallet_id: str) -> bool:
    service = PalletService(
        pallet_repository=PalletDjangoRepository(),
        reservation_repository=ReservationDjangoRepository(),
    )
    result = service.check_completion(pallet_id)
    logger.info("pallet.completion_task_done", pallet_id=pallet_id, triggered=result.triggered)
    return result.triggered
