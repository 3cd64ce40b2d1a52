"""Integration tests for the pallet API.

Covers:
- List / retrieve with live fill, filters and pagination.
- POST /api/v1/pallets/{id}/check-completion/ fires once.
- Admin-only actions: open a pallet, edit completion rules, advance status.
"""

from __future__ import annotations

import pytest

from modules.pallets.constants import PalletStatus
from modules.pallets.models import Pallet
from modules.reservations.constants import ReservationStatus
from modules.reservations.repositories.django_repository import ReservationDjangoRepository

pytestmark = pytest.mark.integration

LIST_URL = "/api/v1/pallets/"
MISSING_ID = "00000000-0000-0000-0000-000000000000"


def _detail(pallet, suffix=""):
    return f"{LIST_URL}{pallet.id}/{suffix}"


@pytest.fixture()
def reserve(delivery_zone):
    def _reserve(pallet, wine, quantity, status=ReservationStatus.PENDING_PAYMENT):
        return ReservationDjangoRepository().create(
            {
                "pallet_id": pallet.id,
                "delivery_zone_id": delivery_zone.id,
                "status": status,
                "items": [{"wine_id": wine.id, "quantity": quantity}],
            }
        )

    return _reserve


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


class TestPalletRead:
    def test_list_includes_fill(self, auth_client, pallet, wine, reserve):
        reserve(pallet, wine, 3)
        reserve(pallet, wine, 3)

        response = auth_client.get(LIST_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        fill = data["results"][0]["fill"]
        assert fill["current_bottles"] == 6
        assert fill["capacity"] == 720
        assert fill["remaining_bottles"] == 714
        assert fill["is_complete"] is False

    def test_retrieve(self, auth_client, pallet):
        response = auth_client.get(_detail(pallet))

        assert response.status_code == 200
        data = response.json()
        assert data["pickup_zone_name"] == "Bordeaux"
        assert data["delivery_zone_name"] == "Stockholm"
        assert data["completion_summary"] == "IF Bottles >= 720 THEN Complete ELSE Incomplete"
        assert data["fill"]["current_bottles"] == 0

    def test_retrieve_unknown(self, auth_client):
        assert auth_client.get(f"{LIST_URL}{MISSING_ID}/").status_code == 404

    def test_filter_by_status(self, auth_client, pallet):
        assert auth_client.get(LIST_URL, {"status": "open"}).json()["count"] == 1
        assert auth_client.get(LIST_URL, {"status": "SHIPPED"}).json()["count"] == 0

    def test_filter_by_notified(self, auth_client, pallet):
        assert auth_client.get(LIST_URL, {"notified": "false"}).json()["count"] == 1
        assert auth_client.get(LIST_URL, {"notified": "true"}).json()["count"] == 0

    def test_page_size(self, auth_client, pickup_zone, other_pickup_zone, delivery_zone):
        for zone in (pickup_zone, other_pickup_zone):
            Pallet.objects.create(name=zone.name, pickup_zone=zone, delivery_zone=delivery_zone)

        data = auth_client.get(LIST_URL, {"page_size": 1}).json()

        assert data["count"] == 2
        assert len(data["results"]) == 1
        assert data["next"] is not None


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


class TestCheckCompletion:
    def test_not_complete(self, auth_client, pallet, wine, reserve):
        reserve(pallet, wine, 6)
        response = auth_client.post(_detail(pallet, "check-completion/"))

        assert response.status_code == 200
        data = response.json()
        assert data["is_complete"] is False
        assert data["triggered"] is False
        assert data["fill"]["current_bottles"] == 6

    def test_triggers_once(self, auth_client, pallet, wine, reserve):
        pallet.bottle_capacity = 6
        pallet.save()
        reserve(pallet, wine, 6)

        first = auth_client.post(_detail(pallet, "check-completion/")).json()
        second = auth_client.post(_detail(pallet, "check-completion/")).json()

        assert first["triggered"] is True
        assert second["triggered"] is False
        assert second["already_notified"] is True
        assert second["is_complete"] is True

    def test_unknown_pallet(self, auth_client):
        response = auth_client.post(f"{LIST_URL}{MISSING_ID}/check-completion/")
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class TestPalletAdmin:
    def test_create(self, admin_client, pickup_zone, delivery_zone):
        response = admin_client.post(
            LIST_URL,
            {
                "name": "Bordeaux to Stockholm",
                "pickup_zone_id": str(pickup_zone.id),
                "delivery_zone_id": str(delivery_zone.id),
                "bottle_capacity": 600,
                "completion_rules": {"type": "profit_gte", "value": 25000},
            },
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["bottle_capacity"] == 600
        assert data["status"] == PalletStatus.OPEN
        assert data["completion_summary"] == "IF Profit (SEK) >= 25000 THEN Complete ELSE Incomplete"

    def test_create_duplicate_lane_is_409(self, admin_client, pallet, pickup_zone, delivery_zone):
        response = admin_client.post(
            LIST_URL,
            {
                "name": "Second",
                "pickup_zone_id": str(pickup_zone.id),
                "delivery_zone_id": str(delivery_zone.id),
            },
            format="json",
        )
        assert response.status_code == 409

    def test_create_with_bad_rules_is_400(self, admin_client, pickup_zone, delivery_zone):
        response = admin_client.post(
            LIST_URL,
            {
                "name": "Bad rules",
                "pickup_zone_id": str(pickup_zone.id),
                "delivery_zone_id": str(delivery_zone.id),
                "completion_rules": {"kind": "whatever"},
            },
            format="json",
        )
        assert response.status_code == 400

    def test_update_rules_accepts_group_format(self, admin_client, pallet):
        response = admin_client.put(
            _detail(pallet, "completion-rules/"),
            {
                "completion_rules": {
                    "groups": [
                        {"conditions": [{"metric": "bottles", "op": ">=", "value": 600}]}
                    ]
                }
            },
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["completion_rules"]["type"] == "or"

    def test_clear_rules(self, admin_client, pallet):
        response = admin_client.put(
            _detail(pallet, "completion-rules/"), {"completion_rules": None}, format="json"
        )
        assert response.status_code == 200
        assert response.json()["completion_rules"] is None

    def test_advance_status(self, admin_client, pallet):
        response = admin_client.post(
            _detail(pallet, "advance-status/"), {"status": "CONSOLIDATING"}, format="json"
        )
        assert response.status_code == 200
        assert response.json()["status"] == "CONSOLIDATING"

    def test_skipping_status_is_400(self, admin_client, pallet):
        response = admin_client.post(
            _detail(pallet, "advance-status/"), {"status": "DELIVERED"}, format="json"
        )
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "method, suffix, body",
        [
            ("post", "advance-status/", {"status": "CONSOLIDATING"}),
            ("put", "completion-rules/", {"completion_rules": None}),
        ],
    )
    def test_admin_actions_forbidden_for_buyers(self, auth_client, pallet, method, suffix, body):
        response = getattr(auth_client, method)(_detail(pallet, suffix), body, format="json")
        assert response.status_code == 403

    def test_create_forbidden_for_buyers(self, auth_client, pickup_zone, delivery_zone):
        response = auth_client.post(
            LIST_URL,
            {
                "name": "Nope",
                "pickup_zone_id": str(pickup_zone.id),
                "delivery_zone_id": str(delivery_zone.id),
            },
            format="json",
        )
        assert response.status_code == 403
