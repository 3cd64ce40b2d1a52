"""Unit tests for BaseModel and SoftDeleteModel.

Exercised through ``Zone`` (plain ``BaseModel``) and ``Wine`` (the only
soft-deleted aggregate), so the abstract behaviour is checked on the
tables the application actually uses.
"""

from __future__ import annotations

import uuid

import pytest
from freezegun import freeze_time

from django.utils import timezone

from modules.catalog.models import Wine
from modules.core.models import SoftDeleteManager, SoftDeleteQuerySet
from modules.zones.constants import ZoneType
from modules.zones.models import Zone

pytestmark = pytest.mark.unit


def _zone(name="Uppsala"):
    return Zone.objects.create(name=name, zone_type=ZoneType.DELIVERY, country_code="SE")


# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class TestBaseModel:
    """UUIDv7 primary keys and timestamp bookkeeping."""

    def test_id_is_uuid_version_7(self):
        zone = _zone()
        assert isinstance(zone.id, uuid.UUID)
        assert zone.id.version == 7

    def test_ids_are_time_ordered(self):
        first = _zone("Västerås")
        second = _zone("Örebro")
        assert str(first.id) < str(second.id)

    def test_updated_at_moves_created_at_stays(self):
        zone = _zone()
        created, updated = zone.created_at, zone.updated_at

        zone.radius_km = 25.0
        zone.save()
        zone.refresh_from_db()

        assert zone.created_at == created
        assert zone.updated_at > updated

    def test_update_fields_still_touch_updated_at(self):
        zone = _zone()
        updated = zone.updated_at

        zone.name = "Uppsala län"
        zone.save(update_fields=["name"])
        zone.refresh_from_db()

        assert zone.updated_at > updated

    def test_id_is_not_editable(self):
        assert Zone._meta.get_field("id").editable is False


# ---------------------------------------------------------------------------
# SoftDeleteModel
# ---------------------------------------------------------------------------


class TestWineSoftDelete:
    def test_new_wine_is_alive(self, wine):
        assert wine.is_deleted is False
        assert wine.deleted_at is None

    def test_delete_marks_row(self, wine):
        result = wine.delete()
        wine.refresh_from_db()

        assert wine.is_deleted is True
        assert result == (1, {"catalog.Wine": 1})

    def test_second_delete_is_noop(self, wine):
        wine.delete()
        assert wine.delete() == (0, {})

    def test_delete_keeps_price(self, wine):
        wine.delete()
        wine.refresh_from_db()
        assert wine.base_price_cents == 12457

    def test_objects_is_unfiltered(self, wine):
        wine.delete()
        assert Wine.objects.filter(pk=wine.pk).exists()
        assert not Wine.objects.alive().filter(pk=wine.pk).exists()
        assert Wine.objects.dead().filter(pk=wine.pk).exists()

    def test_restore(self, wine):
        wine.delete()
        wine.restore()
        wine.refresh_from_db()
        assert wine.is_deleted is False
        assert Wine.objects.alive().filter(pk=wine.pk).exists()

    def test_restore_alive_is_noop(self, wine):
        updated = wine.updated_at
        wine.restore()
        wine.refresh_from_db()
        assert wine.updated_at == updated

    def test_hard_delete(self, wine):
        pk = wine.pk
        wine.hard_delete()
        assert not Wine.objects.filter(pk=pk).exists()

    @freeze_time("2026-05-04 08:00:00")
    def test_delete_records_timestamp(self, wine):
        wine.delete()
        wine.refresh_from_db()
        assert wine.deleted_at == timezone.now()


class TestSoftDeleteQuerySet:
    def test_bulk_delete_skips_already_deleted(self, make_wine):
        a = make_wine(name="A")
        b = make_wine(name="B")
        a.delete()

        count, details = Wine.objects.filter(pk__in=[a.pk, b.pk]).delete()

        assert count == 1
        assert details == {"catalog.Wine": 1}
        b.refresh_from_db()
        assert b.is_deleted is True

    def test_bulk_hard_delete(self, make_wine):
        a = make_wine(name="A")
        Wine.objects.filter(pk=a.pk).hard_delete()
        assert not Wine.objects.filter(pk=a.pk).exists()

    def test_manager_and_queryset_types(self):
        assert isinstance(Wine.objects, SoftDeleteManager)
        assert isinstance(Wine.objects.all(), SoftDeleteQuerySet)
