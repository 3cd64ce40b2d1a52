"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task

from modules.core.models import OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

OUTBOX_BATCH_SIZE = 100


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = OUTBOX_BATCH_SIZE) -> dict:
    """Relay PENDING outbox events to the external workflows.

    Delivery is at-least-once; consumers key on ``aggregate_id``.
    """
    events = list(OutboxEvent.objects.pending()[:batch_size])
    published = 0
    failed = 0
    for event in events:
        try:
            event_bus.publish_external(event.topic, event.event_type, event.payload)
        except Exception as exc:
            logger.warning(
                "outbox.publish_failed",
                event_id=str(event.id),
                event_type=event.event_type,
                error=str(exc),
            )
            event.mark_as_failed(str(exc))
            failed += 1
            continue
        event.mark_as_published()
        published += 1

    logger.info("outbox.relay_finished", published=published, failed=failed)
    return {"published": published, "failed": failed}
