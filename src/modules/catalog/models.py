"""Producers, producer groups and wines.

Business rules implemented:
- A producer belongs to at most one pickup zone and one producer group.
- ``moq_bottles`` is the producer's minimum order per pallet; unset is 0.
- ``Wine.base_price_cents`` is derived from the pricing inputs on every
  save and never accepted as input.
- Wines are soft-deleted so reservation lines keep their history.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.catalog.constants import MAX_MARGIN_PERCENTAGE, ExchangeRateSource
from modules.catalog.pricing import PriceBreakdown, alcohol_tax_from_cents, calculate_price
from modules.core.models import BaseModel, SoftDeleteModel

logger = structlog.get_logger(__name__)


def default_alcohol_tax_cents() -> int:
    return settings.DEFAULT_ALCOHOL_TAX_CENTS


class ProducerGroup(BaseModel):
    """Producers that pool their bottles for the six-bottle rule."""

    name = models.CharField(max_length=255)

    class Meta:
        db_table = "producer_groups"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Producer(BaseModel):
    name = models.CharField(max_length=255)
    handle = models.SlugField(max_length=120, unique=True)
    pickup_zone = models.ForeignKey(
        "zones.Zone",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="producers",
    )
    group = models.ForeignKey(
        ProducerGroup,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="producers",
    )
    moq_bottles = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        db_table = "producers"
        ordering = ["name"]

    @property
    def effective_moq(self) -> int:
        return self.moq_bottles or 0

    def __str__(self) -> str:
        return self.name


class Wine(SoftDeleteModel):
    """A wine offered by a producer, priced from its cost in the producer's currency."""

    producer = models.ForeignKey(
        Producer,
        on_delete=models.PROTECT,
        related_name="wines",
    )
    name = models.CharField(max_length=255)
    vintage = models.CharField(max_length=10, blank=True, default="")

    cost_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    cost_currency = models.CharField(max_length=3, default="EUR")
    exchange_rate_source = models.CharField(
        max_length=20,
        choices=ExchangeRateSource.choices,
        default=ExchangeRateSource.LIVE,
    )
    exchange_rate_date = models.DateField(null=True, blank=True)
    exchange_rate_period_start = models.DateField(null=True, blank=True)
    exchange_rate_period_end = models.DateField(null=True, blank=True)
    exchange_rate = models.DecimalField(
        max_digits=12,
        decimal_places=6,
        null=True,
        blank=True,
    )
    alcohol_tax_cents = models.PositiveIntegerField(default=default_alcohol_tax_cents)
    price_includes_vat = models.BooleanField(default=True)
    margin_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0"),
        validators=[
            MinValueValidator(Decimal("0")),
            MaxValueValidator(Decimal(MAX_MARGIN_PERCENTAGE)),
        ],
    )
    base_price_cents = models.PositiveIntegerField(default=0, editable=False)

    class Meta:
        db_table = "wines"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["producer"], name="wines_producer_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(cost_amount__gte=0),
                name="wines_cost_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.cost_currency:
            self.cost_currency = self.cost_currency.strip().upper()
        if self.exchange_rate_source == ExchangeRateSource.FIXED_DATE and not self.exchange_rate_date:
            raise ValidationError(
                {"exchange_rate_date": "A fixed-date rate needs a date."}
            )
        if self.exchange_rate_source == ExchangeRateSource.PERIOD_AVERAGE:
            start, end = self.exchange_rate_period_start, self.exchange_rate_period_end
            if not start or not end:
                raise ValidationError(
                    {"exchange_rate_period_start": "A period average needs a start and an end."}
                )
            if start > end:
                raise ValidationError(
                    {"exchange_rate_period_end": "The period must end after it starts."}
                )

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    @property
    def effective_exchange_rate(self) -> Decimal:
        return self.exchange_rate if self.exchange_rate is not None else Decimal("1.0")

    def price_breakdown(self, member_discount_percent: Decimal = Decimal("0")) -> PriceBreakdown:
        return calculate_price(
            cost_amount=self.cost_amount,
            exchange_rate=self.effective_exchange_rate,
            alcohol_tax=alcohol_tax_from_cents(self.alcohol_tax_cents),
            margin_percentage=self.margin_percentage,
            price_includes_vat=self.price_includes_vat,
            member_discount_percent=member_discount_percent,
        )

    def recalculate_price(self) -> int:
        self.base_price_cents = self.price_breakdown().final_price_cents
        return self.base_price_cents

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.cost_currency:
            self.cost_currency = self.cost_currency.strip().upper()
        previous_price = self.base_price_cents
        self.recalculate_price()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "base_price_cents" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["base_price_cents"]
        super().save(*args, **kwargs)
        if is_new or previous_price != self.base_price_cents:
            logger.info(
                "wine.price_recalculated",
                wine_id=str(self.id),
                base_price_cents=self.base_price_cents,
                previous_price_cents=None if is_new else previous_price,
            )

    def __str__(self) -> str:
        label = f"{self.name} {self.vintage}".strip()
        return f"{label} ({self.producer_id})"
