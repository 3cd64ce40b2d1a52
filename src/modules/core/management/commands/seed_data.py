from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from modules.catalog.constants import ExchangeRateSource
from modules.catalog.models import Producer, ProducerGroup, Wine
from modules.pallets.models import Pallet
from modules.pallets.rules import AnyOf, BottlesAtLeast, ProfitAtLeast, dump_rules
from modules.zones.constants import ZoneType
from modules.zones.models import Zone

PICKUP_ZONES = [
    # name, country, lat, lon, radius
    ("Bordeaux", "FR", 44.8378, -0.5792, 80.0),
    ("Rioja", "ES", 42.4650, -2.4456, 60.0),
]

DELIVERY_ZONES = [
    ("Stockholm", "SE", 59.3293, 18.0686, 60.0),
    ("Karlstad", "SE", 59.3793, 13.5036, 40.0),
    ("Gothenburg", "SE", 57.7089, 11.9746, 50.0),
]

GROUPS = ["Rive Gauche Collective"]

PRODUCERS = [
    # name, handle, pickup zone, group, moq
    ("Château Lestrille", "chateau-lestrille", "Bordeaux", "Rive Gauche Collective", None),
    ("Domaine du Bouscat", "domaine-du-bouscat", "Bordeaux", "Rive Gauche Collective", 24),
    ("Bodegas Lecea", "bodegas-lecea", "Rioja", None, 36),
]

WINES = [
    # producer handle, name, vintage, cost EUR, margin %
    ("chateau-lestrille", "Bordeaux Rouge", "2020", Decimal("7.00"), Decimal("30")),
    ("chateau-lestrille", "Entre-Deux-Mers Blanc", "2022", Decimal("6.20"), Decimal("30")),
    ("domaine-du-bouscat", "Cuvée Les Portes", "2019", Decimal("9.50"), Decimal("35")),
    ("bodegas-lecea", "Rioja Crianza", "2018", Decimal("8.40"), Decimal("32")),
    ("bodegas-lecea", "Rioja Reserva", "2016", Decimal("12.90"), Decimal("28")),
]

# Fixed seed rate so the command never hits the network.
SEED_EXCHANGE_RATE = Decimal("11.250000")


class Command(BaseCommand):
    help = "Seed database with zones, producers, wines and an open pallet."

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        zones = self._seed_zones()
        producers = self._seed_producers(zones)
        wines = self._seed_wines(producers)
        pallets = self._seed_pallets(zones)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"zones={len(zones)}, "
                f"producers={len(producers)}, "
                f"wines={len(wines)}, "
                f"pallets={len(pallets)}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="user").exists():
            User.objects.create_user("user", password="user123")
            created += 1
        return created

    def _seed_zones(self) -> dict[str, Zone]:
        self.stdout.write("Creating zones...")
        zones: dict[str, Zone] = {}
        for zone_type, rows in ((ZoneType.PICKUP, PICKUP_ZONES), (ZoneType.DELIVERY, DELIVERY_ZONES)):
            for name, country, lat, lon, radius in rows:
                zone, _ = Zone.objects.get_or_create(
                    name=name,
                    zone_type=zone_type,
                    defaults={
                        "country_code": country,
                        "center_lat": lat,
                        "center_lon": lon,
                        "radius_km": radius,
                    },
                )
                zones[name] = zone
        self.stdout.write(self.style.SUCCESS("Creating zones... Done!"))
        return zones

    def _seed_producers(self, zones: dict[str, Zone]) -> dict[str, Producer]:
        self.stdout.write("Creating producers...")
        groups = {
            name: ProducerGroup.objects.get_or_create(name=name)[0] for name in GROUPS
        }
        producers: dict[str, Producer] = {}
        for name, handle, pickup, group, moq in PRODUCERS:
            producer, _ = Producer.objects.get_or_create(
                handle=handle,
                defaults={
                    "name": name,
                    "pickup_zone": zones[pickup],
                    "group": groups.get(group) if group else None,
                    "moq_bottles": moq,
                },
            )
            producers[handle] = producer
        self.stdout.write(self.style.SUCCESS("Creating producers... Done!"))
        return producers

    def _seed_wines(self, producers: dict[str, Producer]) -> list[Wine]:
        self.stdout.write("Creating wines...")
        wines: list[Wine] = []
        for handle, name, vintage, cost, margin in WINES:
            wine, _ = Wine.objects.get_or_create(
                producer=producers[handle],
                name=name,
                vintage=vintage,
                defaults={
                    "cost_amount": cost,
                    "cost_currency": "EUR",
                    "exchange_rate_source": ExchangeRateSource.LIVE,
                    "exchange_rate": SEED_EXCHANGE_RATE,
                    "margin_percentage": margin,
                    "price_includes_vat": True,
                },
            )
            wines.append(wine)
        self.stdout.write(self.style.SUCCESS("Creating wines... Done!"))
        return wines

    def _seed_pallets(self, zones: dict[str, Zone]) -> list[Pallet]:
        self.stdout.write("Creating pallets...")
        pallets: list[Pallet] = []
        rules = dump_rules(
            AnyOf(
                rules=[
                    BottlesAtLeast(value=600),
                    ProfitAtLeast(value=Decimal("25000")),
                ]
            )
        )
        lanes = [("Bordeaux", "Stockholm", rules), ("Rioja", "Karlstad", None)]
        for pickup, delivery, lane_rules in lanes:
            pallet = Pallet.objects.filter(
                pickup_zone=zones[pickup], delivery_zone=zones[delivery]
            ).first()
            if pallet is None:
                pallet = Pallet.objects.create(
                    name=f"{pickup} to {delivery}",
                    pickup_zone=zones[pickup],
                    delivery_zone=zones[delivery],
                    completion_rules=lane_rules,
                )
            pallets.append(pallet)
        self.stdout.write(self.style.SUCCESS("Creating pallets... Done!"))
        return pallets
