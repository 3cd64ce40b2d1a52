"""Pallet repository interface.

Extends ``IRepository[Pallet]`` with lane look-ups, row locking and the
flattened reservation lines the aggregator folds into a fill.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.pallets.aggregation import PalletLine
    from modules.pallets.models import Pallet


class IPalletRepository(IRepository["Pallet"]):
    """Repository contract for the Pallet aggregate."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Pallet]:
        """Retrieve a pallet with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def get_routable_for_lane(
        self, pickup_zone_id: str, delivery_zone_id: str
    ) -> Optional[Pallet]:
        """The OPEN / CONSOLIDATING pallet of a zone pair, if any."""

    @abstractmethod
    def create_for_lane(self, pickup_zone_id: str, delivery_zone_id: str) -> Pallet:
        """Create the routable pallet of a zone pair.

        Returns the concurrently created pallet if another request won.
        """

    @abstractmethod
    def list_lines(self, pallet_ids: Iterable[str]) -> List[PalletLine]:
        """Active reservation lines of the given pallets."""

    @abstractmethod
    def list_unnotified(self) -> List[Pallet]:
        """Routable pallets whose completion has not been notified yet."""
