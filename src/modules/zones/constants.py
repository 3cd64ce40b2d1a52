"""Zone domain constants."""

from django.db import models


class ZoneType(models.TextChoices):
    PICKUP = "pickup", "Pickup"
    DELIVERY = "delivery", "Delivery"


EARTH_RADIUS_KM = 6371.0
