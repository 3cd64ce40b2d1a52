"""Catalog domain exceptions.

Raised by the pricing calculator and the catalog service.  The API layer
translates them into HTTP responses.
"""

from __future__ import annotations


class InvalidPricingInput(Exception):
    """A pricing input is missing, negative or not a finite number."""


class WineNotFound(Exception):
    """The requested wine does not exist or has been soft-deleted."""
