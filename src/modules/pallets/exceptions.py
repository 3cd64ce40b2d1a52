"""Pallet domain exceptions.

Raised by the Service Layer; the API layer translates them into HTTP
responses.
"""

from __future__ import annotations


class PalletNotFound(Exception):
    """The requested pallet does not exist."""


class InvalidPalletStatus(Exception):
    """A backwards or skipping status transition was attempted."""


class InvalidCompletionRules(ValueError):
    """Stored or submitted completion rules do not match any known format."""


class PalletAlreadyExists(Exception):
    """The zone lane already has an OPEN or CONSOLIDATING pallet."""


class PalletNotRoutable(Exception):
    """The pallet has left OPEN / CONSOLIDATING and takes no more reservations."""
