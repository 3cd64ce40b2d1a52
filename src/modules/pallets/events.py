"""Domain events for the Pallets bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class PalletCompleted(DomainEvent):
    """Raised once, when a pallet first satisfies its completion rules."""

    topic: ClassVar[str] = "pallets"

    current_bottles: int = 0
    capacity: int = 0
    profit_cents_ex_vat: int = 0
    payment_deadline: Optional[datetime] = None
    reservations_awaiting_payment: int = 0


@dataclass(frozen=True)
class PalletStatusChanged(DomainEvent):
    topic: ClassVar[str] = "pallets"

    old_status: str = ""
    new_status: str = ""
