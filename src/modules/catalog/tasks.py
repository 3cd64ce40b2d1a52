"""Celery tasks for the catalog."""

from __future__ import annotations

from celery import shared_task

from modules.catalog.fx import ExchangeRateProvider
from modules.catalog.repositories.django_repository import WineDjangoRepository
from modules.catalog.services import CatalogService


@shared_task(name="catalog.refresh_live_exchange_rates")
def refresh_live_exchange_rates() -> int:
    service = CatalogService(
        repository=WineDjangoRepository(),
        rate_provider=ExchangeRateProvider(),
    )
    return service.refresh_live_rates()
