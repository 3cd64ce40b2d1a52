"""Zone matching exceptions.

Both are recoverable: the checkout surfaces them so the customer can pick
a delivery zone or split the cart.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from modules.zones.dtos import ZoneMatch


class ZoneUnresolved(Exception):
    """No pickup or delivery zone could be determined for a cart."""

    def __init__(self, message: str, match: Optional[ZoneMatch] = None) -> None:
        super().__init__(message)
        self.match = match


class MixedPickupZones(Exception):
    """Cart lines come from producers in more than one pickup zone.

    A pallet has exactly one pickup zone, so such a cart cannot be routed.
    """

    def __init__(self, message: str, pickup_zone_ids: list[str]) -> None:
        super().__init__(message)
        self.pickup_zone_ids = pickup_zone_ids
