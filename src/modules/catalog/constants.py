"""Catalog constants."""

from django.db import models


class ExchangeRateSource(models.TextChoices):
    LIVE = "live", "Live"
    FIXED_DATE = "fixed_date", "Fixed date"
    PERIOD_AVERAGE = "period_average", "Period average"


MAX_MARGIN_PERCENTAGE = 100
