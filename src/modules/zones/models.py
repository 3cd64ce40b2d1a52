"""Pickup and delivery zones.

A pickup zone groups producers whose bottles are collected together; a
delivery zone is a circle (``center_lat``/``center_lon`` + ``radius_km``)
that customer addresses fall into.  A pallet lane is one
(pickup zone, delivery zone) pair.
"""

from __future__ import annotations

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.zones.constants import ZoneType


class Zone(BaseModel):
    name: models.CharField = models.CharField(max_length=120)
    zone_type: models.CharField = models.CharField(
        max_length=10,
        choices=ZoneType.choices,
    )
    # Empty means the zone applies regardless of country.
    country_code: models.CharField = models.CharField(
        max_length=2, blank=True, default=""
    )
    center_lat: models.FloatField = models.FloatField(
        null=True,
        blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)],
    )
    center_lon: models.FloatField = models.FloatField(
        null=True,
        blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)],
    )
    radius_km: models.FloatField = models.FloatField(
        null=True, blank=True, validators=[MinValueValidator(0)]
    )

    class Meta:
        db_table = "pallet_zones"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["zone_type", "country_code"], name="zones_type_country_idx"),
        ]

    @property
    def is_geolocated(self) -> bool:
        return (
            self.center_lat is not None
            and self.center_lon is not None
            and self.radius_km is not None
        )

    def __str__(self) -> str:
        return f"{self.name} ({self.zone_type})"
