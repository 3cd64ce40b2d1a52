"""Zone repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, List

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.zones.models import Zone


class IZoneRepository(IRepository["Zone"]):
    @abstractmethod
    def delivery_zones_for_country(self, country_code: str) -> List[Zone]:
        """Delivery zones of ``country_code`` plus zones with no country."""
