"""Reservation repositories package."""

from modules.reservations.repositories.django_repository import ReservationDjangoRepository
from modules.reservations.repositories.interfaces import IReservationRepository

__all__ = ["IReservationRepository", "ReservationDjangoRepository"]
