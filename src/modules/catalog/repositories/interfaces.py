"""Wine repository interface.

Extends ``IRepository[Wine]`` with the batch look-ups used by checkout
validation and the exchange-rate refresh.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, List

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Wine


class IWineRepository(IRepository["Wine"]):
    """Repository contract for the Wine aggregate.

    Soft-deleted wines are invisible to every method.
    """

    @abstractmethod
    def get_many(self, ids: Iterable[str]) -> Dict[str, Wine]:
        """Alive wines keyed by ``str(id)``, with producer and group loaded."""

    @abstractmethod
    def list_by_rate_source(self, source: str) -> List[Wine]:
        """Alive wines whose exchange rate comes from ``source``."""
