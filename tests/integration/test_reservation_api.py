"""Integration tests for the reservation read API.

Buyers see their own reservations; staff see every reservation.
"""

from __future__ import annotations

import pytest
from django.contrib.auth import get_user_model

from modules.reservations.constants import ReservationStatus
from modules.reservations.repositories.django_repository import ReservationDjangoRepository

pytestmark = pytest.mark.integration

User = get_user_model()

LIST_URL = "/api/v1/reservations/"


@pytest.fixture()
def make_reservation(pallet, delivery_zone, wine):
    def _make(user=None, quantity=6, status=ReservationStatus.PENDING_PAYMENT):
        return ReservationDjangoRepository().create(
            {
                "user_id": user.pk if user else None,
                "pallet_id": pallet.id,
                "delivery_zone_id": delivery_zone.id,
                "status": status,
                "items": [{"wine_id": wine.id, "quantity": quantity}],
            }
        )

    return _make


@pytest.fixture()
def other_user():
    return User.objects.create_user(username="other-buyer", password="testpass123")


class TestReservationList:
    def test_buyer_sees_own_only(self, auth_client, user, other_user, make_reservation):
        mine = make_reservation(user)
        make_reservation(other_user)

        data = auth_client.get(LIST_URL).json()

        assert data["count"] == 1
        assert data["results"][0]["id"] == str(mine.id)
        assert data["results"][0]["total_bottles"] == 6

    def test_staff_sees_all(self, admin_client, user, other_user, make_reservation):
        make_reservation(user)
        make_reservation(other_user)
        assert admin_client.get(LIST_URL).json()["count"] == 2

    def test_filter_by_status_and_pallet(self, admin_client, pallet, user, make_reservation):
        make_reservation(user)
        make_reservation(user, status=ReservationStatus.DECLINED)

        by_status = admin_client.get(LIST_URL, {"status": "declined"}).json()
        by_pallet = admin_client.get(LIST_URL, {"pallet": str(pallet.id)}).json()

        assert by_status["count"] == 1
        assert by_pallet["count"] == 2

    def test_invalid_pallet_filter_is_400(self, admin_client):
        response = admin_client.get(LIST_URL, {"pallet": "not-a-uuid"})
        assert response.status_code == 400


class TestReservationRetrieve:
    def test_owner(self, auth_client, user, make_reservation):
        reservation = make_reservation(user, quantity=12)

        response = auth_client.get(f"{LIST_URL}{reservation.id}/")

        assert response.status_code == 200
        data = response.json()
        assert data["total_bottles"] == 12
        assert data["items"][0]["effective_quantity"] == 12
        assert data["items"][0]["producer_approved_quantity"] is None

    def test_other_buyer_gets_404(self, auth_client, other_user, make_reservation):
        reservation = make_reservation(other_user)
        assert auth_client.get(f"{LIST_URL}{reservation.id}/").status_code == 404

    def test_staff_can_read_any(self, admin_client, other_user, make_reservation):
        reservation = make_reservation(other_user)
        assert admin_client.get(f"{LIST_URL}{reservation.id}/").status_code == 200

    def test_unknown_id(self, auth_client):
        assert auth_client.get(f"{LIST_URL}not-a-uuid/").status_code == 404
