"""Reservation / checkout domain exceptions.

Raised by the Service Layer; views translate them into HTTP responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from modules.catalog.exceptions import WineNotFound

if TYPE_CHECKING:
    from modules.reservations.validation import SixBottleValidation

__all__ = [
    "EmptyCart",
    "ReservationNotFound",
    "SixBottleRuleViolation",
    "WineNotFound",
]


class SixBottleRuleViolation(Exception):
    """A producer or producer group in the cart is not a multiple of six.

    Carries the full breakdown so the client can show what to add.
    """

    def __init__(self, validation: SixBottleValidation) -> None:
        super().__init__("; ".join(validation.errors) or "Six-bottle rule violated.")
        self.validation = validation

    @property
    def errors(self) -> List[str]:
        return list(self.validation.errors)


class ReservationNotFound(Exception):
    """The requested reservation does not exist."""


class EmptyCart(Exception):
    """Checkout was attempted without any line."""
