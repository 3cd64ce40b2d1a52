"""Django ORM implementation of the Wine repository.

Methods return ``None`` or empty collections for unknown IDs; the
service layer decides whether that is an error.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.catalog.models import Wine
from modules.catalog.repositories.interfaces import IWineRepository

logger = structlog.get_logger(__name__)


class WineDjangoRepository(IWineRepository):
    """Concrete Wine repository backed by Django ORM."""

    def _alive(self):
        return Wine.objects.alive().select_related("producer", "producer__group")

    def get_by_id(self, id: str) -> Optional[Wine]:
        try:
            return self._alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Wine]:
        """List alive wines with optional Django ORM look-ups.

        Examples of valid filters::

            {"producer_id": "..."}
            {"cost_currency": "EUR"}
        """
        queryset = self._alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Wine) -> Wine:
        entity.save()
        logger.info(
            "wine.saved",
            wine_id=str(entity.id),
            base_price_cents=entity.base_price_cents,
        )
        return entity

    def get_many(self, ids: Iterable[str]) -> Dict[str, Wine]:
        wanted = {str(i) for i in ids if i}
        if not wanted:
            return {}
        try:
            wines = self._alive().filter(id__in=wanted)
            return {str(w.id): w for w in wines}
        except (ValueError, ValidationError):
            # One malformed id poisons the IN clause; fall back to per-id look-ups.
            found = (self.get_by_id(i) for i in wanted)
            return {str(w.id): w for w in found if w is not None}

    def list_by_rate_source(self, source: str) -> List[Wine]:
        return list(self._alive().filter(exchange_rate_source=source))
