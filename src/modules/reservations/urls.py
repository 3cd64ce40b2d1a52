"""Checkout and reservation URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.reservations.views import (
    CheckoutConfirmView,
    CheckoutValidateView,
    ReservationViewSet,
)

router = DefaultRouter(trailing_slash=True)
router.register("reservations", ReservationViewSet, basename="reservation")

urlpatterns = [
    path("checkout/validate/", CheckoutValidateView.as_view(), name="checkout-validate"),
    path("checkout/confirm/", CheckoutConfirmView.as_view(), name="checkout-confirm"),
    *router.urls,
]
