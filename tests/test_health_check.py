import pytest

pytestmark = pytest.mark.integration


class TestHealthCheck:
    def test_healthy(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    @pytest.mark.parametrize("service", ["database", "cache"])
    def test_reports_each_service(self, client, service):
        entry = client.get("/health").json()["services"][service]
        assert entry["status"] == "up"
        assert "response_time_ms" in entry

    def test_unauthenticated_access_allowed(self, api_client):
        assert api_client.get("/health").status_code == 200

    def test_cache_failure_is_503(self, client, monkeypatch):
        from django.core.cache import cache

        monkeypatch.setattr(cache, "get", lambda *args, **kwargs: None)
        response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["cache"]["status"] == "down"
        assert data["services"]["database"]["status"] == "up"

    def test_reports_outbox_backlog(self, client):
        from uuid import uuid4

        from modules.core.models import OutboxEvent
        from modules.reservations.events import ReservationCreated

        OutboxEvent.objects.record(ReservationCreated(aggregate_id=uuid4()))
        OutboxEvent.objects.record(ReservationCreated(aggregate_id=uuid4())).mark_as_failed("x")

        backlog = client.get("/health").json()["outbox"]

        assert backlog == {"pending": 1, "failed": 1}
