"""Catalog repositories package."""

from modules.catalog.repositories.django_repository import WineDjangoRepository
from modules.catalog.repositories.interfaces import IWineRepository

__all__ = ["IWineRepository", "WineDjangoRepository"]
