"""Catalog service layer (Use Cases).

Quotes prices, refreshes the exchange rate stored on wines and applies
bulk margin changes.  Every write goes through ``Wine.save`` so
``base_price_cents`` is always recomputed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import structlog
from django.conf import settings
from django.db import transaction

from modules.catalog.constants import ExchangeRateSource
from modules.catalog.exceptions import InvalidPricingInput, WineNotFound
from modules.catalog.pricing import PriceBreakdown, alcohol_tax_from_cents, calculate_price

if TYPE_CHECKING:
    from modules.catalog.dtos import BulkMarginDTO, PriceQuoteDTO
    from modules.catalog.fx import ExchangeRateProvider
    from modules.catalog.models import Wine
    from modules.catalog.repositories.interfaces import IWineRepository

logger = structlog.get_logger(__name__)


class CatalogService:
    """Application service for pricing use-cases.

    Receives an ``IWineRepository`` and an optional
    ``ExchangeRateProvider`` via constructor injection.
    """

    def __init__(
        self,
        repository: IWineRepository,
        rate_provider: Optional[ExchangeRateProvider] = None,
    ) -> None:
        self._repo = repository
        self._rates = rate_provider

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_wine(self, id: str) -> Wine:
        """Raises:
        WineNotFound: if the wine does not exist or is soft-deleted.
        """
        wine = self._repo.get_by_id(id)
        if not wine:
            raise WineNotFound(f"Wine {id} not found.")
        return wine

    def quote(self, dto: PriceQuoteDTO) -> PriceBreakdown:
        """Price an existing wine or a set of raw inputs.

        Raises:
            WineNotFound: ``wine_id`` does not match an alive wine.
            InvalidPricingInput: raw inputs are missing or invalid.
        """
        if dto.is_for_wine:
            wine = self.get_wine(dto.wine_id)
            breakdown = wine.price_breakdown(dto.member_discount_percent)
            logger.info(
                "pricing.quoted",
                wine_id=str(wine.id),
                final_price_cents=breakdown.final_price_cents,
            )
            return breakdown

        if dto.cost_amount is None:
            raise InvalidPricingInput("cost_amount is required when no wine_id is given.")
        alcohol_tax = (
            dto.alcohol_tax
            if dto.alcohol_tax is not None
            else alcohol_tax_from_cents(settings.DEFAULT_ALCOHOL_TAX_CENTS)
        )
        breakdown = calculate_price(
            cost_amount=dto.cost_amount,
            exchange_rate=dto.exchange_rate,
            alcohol_tax=alcohol_tax,
            margin_percentage=dto.margin_percentage,
            price_includes_vat=dto.price_includes_vat,
            member_discount_percent=dto.member_discount_percent,
        )
        logger.info("pricing.quoted", final_price_cents=breakdown.final_price_cents)
        return breakdown

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def refresh_exchange_rate(self, id: str) -> Wine:
        """Re-resolve a wine's exchange rate and reprice it.

        Raises:
            WineNotFound: if the wine does not exist.
        """
        wine = self.get_wine(id)
        if self._rates is None:
            return wine
        wine.exchange_rate = self._rates.resolve_rate_for_wine(wine)
        return self._repo.save(wine)

    def refresh_live_rates(self) -> int:
        """Reprice every wine priced at the live rate; returns how many changed."""
        changed = 0
        for wine in self._repo.list_by_rate_source(ExchangeRateSource.LIVE):
            before = wine.base_price_cents
            wine = self.refresh_exchange_rate(str(wine.id))
            if wine.base_price_cents != before:
                changed += 1
        logger.info("pricing.live_rates_refreshed", changed=changed)
        return changed

    @transaction.atomic
    def bulk_update_margin(self, dto: BulkMarginDTO) -> List[Wine]:
        filters = {"id__in": dto.wine_ids} if dto.wine_ids else None
        wines = self._repo.list(filters)
        for wine in wines:
            wine.margin_percentage = dto.margin_percentage
            self._repo.save(wine)
        logger.info(
            "pricing.bulk_margin_updated",
            margin_percentage=str(dto.margin_percentage),
            updated=len(wines),
        )
        return wines
