"""Pallet domain constants.

Pallet status only moves forward: a shipped pallet never reopens.
"""

from django.db import models


class PalletStatus(models.TextChoices):
    OPEN = "OPEN", "Open"
    CONSOLIDATING = "CONSOLIDATING", "Consolidating"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"


VALID_TRANSITIONS: dict[str, set[str]] = {
    PalletStatus.OPEN: {PalletStatus.CONSOLIDATING},
    PalletStatus.CONSOLIDATING: {PalletStatus.SHIPPED},
    PalletStatus.SHIPPED: {PalletStatus.DELIVERED},
    PalletStatus.DELIVERED: set(),
}

# Statuses in which a pallet still accepts reservations from checkout.
ROUTABLE_STATES: set[str] = {PalletStatus.OPEN, PalletStatus.CONSOLIDATING}
