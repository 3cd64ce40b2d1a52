"""Pickup / delivery zone matching for a cart and a delivery address.

The pickup zone comes from the producers in the cart and must be unique,
since a pallet travels from exactly one pickup zone.  The delivery zone is
found by geocoding the address and testing it against the radius of every
delivery zone of the address country.  An address that falls in no zone is
not an error: the caller gets ``delivery_zone_id=None`` and decides.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

import structlog

from modules.zones.constants import EARTH_RADIUS_KM
from modules.zones.dtos import DeliveryAddress, DeliveryZoneOption, ZoneMatch
from modules.zones.exceptions import MixedPickupZones
from modules.zones.repositories.interfaces import IZoneRepository

logger = structlog.get_logger(__name__)

Coordinates = Tuple[float, float]


class Geocoder(Protocol):
    def locate(self, address: DeliveryAddress) -> Optional[Coordinates]: ...


# City centres for the markets currently served.
SWEDISH_CITIES: Dict[str, Coordinates] = {
    "stockholm": (59.3293, 18.0686),
    "karlstad": (59.3793, 13.5036),
    "gothenburg": (57.7089, 11.9746),
    "göteborg": (57.7089, 11.9746),
    "malmö": (55.6050, 13.0038),
    "malmo": (55.6050, 13.0038),
    "uppsala": (59.8586, 17.6389),
    "västerås": (59.6162, 16.5528),
    "örebro": (59.2741, 15.2066),
    "linköping": (58.4108, 15.6214),
    "helsingborg": (56.0465, 12.6945),
    "jönköping": (57.7826, 14.1618),
}


class CityGeocoder:
    """Resolves an address to the centre of its city from a lookup table."""

    def __init__(self, cities: Optional[Dict[str, Dict[str, Coordinates]]] = None) -> None:
        self._cities = cities if cities is not None else {"SE": SWEDISH_CITIES}

    def locate(self, address: DeliveryAddress) -> Optional[Coordinates]:
        table = self._cities.get(address.country_code, {})
        return table.get(address.city.strip().lower())


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    d_lat = lat2 - lat1
    d_lon = lon2 - lon1
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


class ZoneMatcher:
    def __init__(self, zone_repository: IZoneRepository, geocoder: Optional[Geocoder] = None) -> None:
        self._zone_repo = zone_repository
        self._geocoder = geocoder or CityGeocoder()

    def resolve_pickup_zone(self, pickup_zone_ids: Iterable[Optional[str]]) -> Optional[str]:
        """Return the single pickup zone shared by the cart, if any.

        Raises:
            MixedPickupZones: the cart spans more than one pickup zone.
        """
        zone_ids = sorted({str(z) for z in pickup_zone_ids if z})
        if len(zone_ids) > 1:
            logger.warning("zones.mixed_pickup_zones", pickup_zone_ids=zone_ids)
            raise MixedPickupZones(
                f"Cart spans {len(zone_ids)} pickup zones; a pallet has exactly one.",
                pickup_zone_ids=zone_ids,
            )
        return zone_ids[0] if zone_ids else None

    def delivery_zone_options(self, address: DeliveryAddress) -> List[DeliveryZoneOption]:
        """All delivery zones containing the address, closest centre first."""
        if not address.is_complete:
            return []
        point = self._geocoder.locate(address)
        if point is None:
            logger.info(
                "zones.address_not_geocoded",
                city=address.city,
                country_code=address.country_code,
            )
            return []

        options: List[DeliveryZoneOption] = []
        for zone in self._zone_repo.delivery_zones_for_country(address.country_code):
            if not zone.is_geolocated:
                continue
            distance = haversine_km(point, (zone.center_lat, zone.center_lon))
            if distance <= zone.radius_km:
                options.append(
                    DeliveryZoneOption(
                        id=str(zone.id),
                        name=zone.name,
                        distance_km=round(distance, 3),
                        radius_km=zone.radius_km,
                    )
                )
        options.sort(key=lambda o: o.distance_km)
        return options

    def match_delivery_zone(self, address: DeliveryAddress) -> Optional[str]:
        options = self.delivery_zone_options(address)
        return options[0].id if options else None

    def match(
        self, pickup_zone_ids: Iterable[Optional[str]], address: DeliveryAddress
    ) -> ZoneMatch:
        pickup_zone_id = self.resolve_pickup_zone(pickup_zone_ids)
        options = self.delivery_zone_options(address)
        delivery = options[0] if options else None

        pickup_name = None
        if pickup_zone_id:
            pickup_zone = self._zone_repo.get_by_id(pickup_zone_id)
            pickup_name = pickup_zone.name if pickup_zone else None

        match = ZoneMatch(
            pickup_zone_id=pickup_zone_id,
            pickup_zone_name=pickup_name,
            delivery_zone_id=delivery.id if delivery else None,
            delivery_zone_name=delivery.name if delivery else None,
            available_delivery_zones=options,
        )
        logger.info(
            "zones.matched",
            pickup_zone_id=match.pickup_zone_id,
            delivery_zone_id=match.delivery_zone_id,
            candidates=len(options),
        )
        return match
