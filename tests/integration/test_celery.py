"""Integration tests for the Celery configuration and the outbox relay."""

from uuid import uuid4

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.core.tasks import publish_outbox_events
from modules.pallets.events import PalletCompleted
from modules.reservations.events import ReservationCreated
from shared.infrastructure.bus import event_bus

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _celery_eager(settings):
    """Run tasks synchronously in the test process."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


@pytest.fixture()
def publishers():
    """Register capturing publishers and restore the global bus afterwards."""
    saved = dict(event_bus._publishers)
    received = []
    yield received, event_bus
    event_bus._publishers.clear()
    event_bus._publishers.update(saved)


def _outbox(event):
    return OutboxEvent.objects.record(event)


class TestCeleryConfig:
    def test_celery_app_name(self):
        from config import celery_app
        from config.celery import app

        assert app.main == "pact"
        assert celery_app is app

    def test_broker_and_backend_use_redis(self, settings):
        assert "redis" in settings.CELERY_BROKER_URL
        assert "redis" in settings.CELERY_RESULT_BACKEND

    def test_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_beat_schedule_names_registered_tasks(self, settings):
        from config.celery import app

        app.loader.import_default_modules()
        scheduled = {entry["task"] for entry in settings.CELERY_BEAT_SCHEDULE.values()}
        assert scheduled == {
            "pallets.reconcile_completion",
            "core.publish_outbox_events",
            "catalog.refresh_live_exchange_rates",
        }
        assert scheduled <= set(app.tasks)


class TestPublishOutboxEvents:
    def test_relays_pending_events_by_topic(self, publishers):
        received, bus = publishers
        bus.register_publisher("pallets", lambda event_type, payload: received.append(event_type))
        pallet_row = _outbox(PalletCompleted(aggregate_id=uuid4(), current_bottles=720))
        reservation_row = _outbox(ReservationCreated(aggregate_id=uuid4(), bottles=6))

        result = publish_outbox_events.delay().get()

        assert result == {"published": 2, "failed": 0}
        assert received == ["PalletCompleted"]
        pallet_row.refresh_from_db()
        reservation_row.refresh_from_db()
        assert pallet_row.status == EventStatus.PUBLISHED
        # no publisher for the topic: logged and acknowledged
        assert reservation_row.status == EventStatus.PUBLISHED

    def test_failed_publisher_marks_event(self, publishers):
        _, bus = publishers

        def broken(event_type, payload):
            raise ConnectionError("payment workflow unavailable")

        bus.register_publisher("pallets", broken)
        row = _outbox(PalletCompleted(aggregate_id=uuid4()))

        result = publish_outbox_events()

        assert result == {"published": 0, "failed": 1}
        row.refresh_from_db()
        assert row.status == EventStatus.FAILED
        assert row.retry_count == 1
        assert "unavailable" in row.error_message

    def test_published_events_not_relayed_twice(self, publishers):
        received, bus = publishers
        bus.register_publisher("pallets", lambda event_type, payload: received.append(payload))
        _outbox(PalletCompleted(aggregate_id=uuid4()))

        publish_outbox_events()
        second = publish_outbox_events()

        assert second == {"published": 0, "failed": 0}
        assert len(received) == 1

    def test_batch_size(self):
        for _ in range(3):
            _outbox(ReservationCreated(aggregate_id=uuid4()))

        assert publish_outbox_events(batch_size=2)["published"] == 2
        assert OutboxEvent.objects.filter(status=EventStatus.PENDING).count() == 1
