from decimal import Decimal

import pytest

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils.text import slugify

from rest_framework.test import APIClient

from modules.catalog.models import Producer, ProducerGroup, Wine
from modules.pallets.models import Pallet
from modules.zones.constants import ZoneType
from modules.zones.models import Zone

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters and memoised FX rates must not leak between tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def user():
    return User.objects.create_user(username="buyer", password="testpass123")


@pytest.fixture()
def auth_client(user):
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def admin_client():
    client = APIClient()
    admin = User.objects.create_superuser(username="pallet-admin", password="testpass123")
    client.force_authenticate(user=admin)
    return client


# ---------------------------------------------------------------------------
# Domain factories
# ---------------------------------------------------------------------------


@pytest.fixture()
def pickup_zone():
    return Zone.objects.create(
        name="Bordeaux",
        zone_type=ZoneType.PICKUP,
        country_code="FR",
        center_lat=44.8378,
        center_lon=-0.5792,
        radius_km=80.0,
    )


@pytest.fixture()
def other_pickup_zone():
    return Zone.objects.create(
        name="Rioja",
        zone_type=ZoneType.PICKUP,
        country_code="ES",
        center_lat=42.4650,
        center_lon=-2.4456,
        radius_km=60.0,
    )


@pytest.fixture()
def delivery_zone():
    return Zone.objects.create(
        name="Stockholm",
        zone_type=ZoneType.DELIVERY,
        country_code="SE",
        center_lat=59.3293,
        center_lon=18.0686,
        radius_km=60.0,
    )


@pytest.fixture()
def make_producer(pickup_zone):
    def _make(name="Château Test", handle=None, group=None, moq_bottles=None, zone=pickup_zone):
        return Producer.objects.create(
            name=name,
            handle=handle or slugify(name),
            pickup_zone=zone,
            group=group,
            moq_bottles=moq_bottles,
        )

    return _make


@pytest.fixture()
def producer(make_producer):
    return make_producer()


@pytest.fixture()
def producer_group():
    return ProducerGroup.objects.create(name="Rive Gauche Collective")


@pytest.fixture()
def make_wine(producer):
    def _make(
        name="Bordeaux Rouge",
        producer=producer,
        cost_amount=Decimal("7.00"),
        exchange_rate=Decimal("11.25"),
        alcohol_tax_cents=2219,
        margin_percentage=Decimal("30"),
        price_includes_vat=True,
    ):
        return Wine.objects.create(
            producer=producer,
            name=name,
            cost_amount=cost_amount,
            cost_currency="EUR",
            exchange_rate=exchange_rate,
            alcohol_tax_cents=alcohol_tax_cents,
            margin_percentage=margin_percentage,
            price_includes_vat=price_includes_vat,
        )

    return _make


@pytest.fixture()
def wine(make_wine):
    return make_wine()


@pytest.fixture()
def pallet(pickup_zone, delivery_zone):
    return Pallet.objects.create(
        name="Bordeaux to Stockholm",
        pickup_zone=pickup_zone,
        delivery_zone=delivery_zone,
        bottle_capacity=720,
    )
