"""Django ORM implementation of the Zone repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db.models import Q

from modules.zones.constants import ZoneType
from modules.zones.models import Zone
from modules.zones.repositories.interfaces import IZoneRepository


class ZoneDjangoRepository(IZoneRepository):
    def get_by_id(self, id: str) -> Optional[Zone]:
        try:
            return Zone.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Zone]:
        queryset = Zone.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: Zone) -> Zone:
        entity.save()
        return entity

    def delivery_zones_for_country(self, country_code: str) -> List[Zone]:
        return list(
            Zone.objects.filter(zone_type=ZoneType.DELIVERY).filter(
                Q(country_code=country_code.upper()) | Q(country_code="")
            )
        )
