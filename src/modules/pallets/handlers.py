"""Event handlers for Pallets domain events."""

from __future__ import annotations

import structlog

from modules.pallets.events import PalletCompleted
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


def on_pallet_complete(pallet_id: str) -> None:
    """Hand-off point of the payment-notification workflow.

    The workflow itself (payment links, e-mails) lives outside this
    service and consumes the ``PalletCompleted`` outbox event.
    """
    logger.info("pallet.payment_notification_triggered", pallet_id=pallet_id)


class PalletCompletedHandler(IEventHandler[PalletCompleted]):
    def handle(self, event: PalletCompleted) -> None:
        on_pallet_complete(str(event.aggregate_id))


pallet_completed_handler = PalletCompletedHandler()
