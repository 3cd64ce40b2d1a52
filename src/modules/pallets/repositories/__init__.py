"""Pallet repositories package."""

from modules.pallets.repositories.django_repository import PalletDjangoRepository
from modules.pallets.repositories.interfaces import IPalletRepository

__all__ = ["IPalletRepository", "PalletDjangoRepository"]
