import time
from typing import Any, Callable, Dict

import structlog
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

from modules.core.models import EventStatus, OutboxEvent

logger = structlog.get_logger()

HEALTH_CACHE_KEY = "pact:health"


def _probe_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _probe_cache() -> None:
    # FX rates and throttle counters live here
    cache.set(HEALTH_CACHE_KEY, "ok", 10)
    if cache.get(HEALTH_CACHE_KEY) != "ok":
        raise ConnectionError("Cache read failed")


PROBES: Dict[str, Callable[[], None]] = {
    "database": _probe_database,
    "cache": _probe_cache,
}


def _timed(name: str, probe: Callable[[], None]) -> Dict[str, Any]:
    start = time.monotonic()
    try:
        probe()
    except Exception as exc:
        logger.error("health_check.probe_failed", service=name, error=str(exc))
        return {"status": "down"}
    return {"status": "up", "response_time_ms": round((time.monotonic() - start) * 1000, 2)}


def _outbox_backlog() -> Dict[str, int]:
    """Informational only; a backlog does not make the service unhealthy."""
    return {
        "pending": OutboxEvent.objects.filter(status=EventStatus.PENDING).count(),
        "failed": OutboxEvent.objects.filter(status=EventStatus.FAILED).count(),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    services = {name: _timed(name, probe) for name, probe in PROBES.items()}
    healthy = all(entry["status"] == "up" for entry in services.values())

    body: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": timezone.now().isoformat(),
        "services": services,
    }
    if services["database"]["status"] == "up":
        body["outbox"] = _outbox_backlog()

    logger.info("health_check.completed", status=body["status"])
    return JsonResponse(body, status=200 if healthy else 503)
