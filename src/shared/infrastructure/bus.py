"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)

ExternalPublisher = Callable[[str, Dict[str, Any]], None]


class InMemoryEventBus(IEventBus):
    """In-process bus plus per-topic publishers for outbox relays.

    ``publish`` dispatches a live ``DomainEvent`` to subscribed handlers.
    ``publish_external`` receives a serialized outbox row and forwards it
    to the publisher registered for its topic (payment workflow, e-mail
    service).  Topics without a publisher are logged and acknowledged.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}
        self._publishers: Dict[str, ExternalPublisher] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        for handler in self._handlers.get(type(event), []):
            handler.handle(event)

    def register_publisher(self, topic: str, publisher: ExternalPublisher) -> None:
        self._publishers[topic] = publisher

    def publish_external(
        self, topic: str, event_type: str, payload: Dict[str, Any]
    ) -> None:
        publisher = self._publishers.get(topic)
        if publisher is None:
            logger.info("bus.no_external_publisher", topic=topic, event_type=event_type)
            return
        publisher(event_type, payload)


# Global bus instance (singleton)

event_bus = InMemoryEventBus()
