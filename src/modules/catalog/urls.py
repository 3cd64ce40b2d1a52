"""Catalog URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.catalog.views import PriceQuoteView, WineViewSet

router = DefaultRouter(trailing_slash=True)
router.register("wines", WineViewSet, basename="wine")

urlpatterns = [
    path("pricing/quote/", PriceQuoteView.as_view(), name="pricing-quote"),
    *router.urls,
]
