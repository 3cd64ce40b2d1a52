"""Pallet URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.pallets.views import PalletViewSet

router = DefaultRouter(trailing_slash=True)
router.register("pallets", PalletViewSet, basename="pallet")

urlpatterns = router.urls
