"""Checkout and reservation API views.

Exposes ``CheckoutService`` via HTTP.  Domain exceptions are caught and
translated into HTTP status codes; the views never swallow generic
exceptions.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.catalog.repositories.django_repository import WineDjangoRepository
from modules.core.pagination import StandardResultsSetPagination
from modules.pallets.exceptions import PalletNotFound, PalletNotRoutable
from modules.pallets.repositories.django_repository import PalletDjangoRepository
from modules.pallets.services import PalletService
from modules.reservations.dtos import CheckoutLineDTO, ConfirmCheckoutDTO, ValidateCartDTO
from modules.reservations.exceptions import (
    EmptyCart,
    ReservationNotFound,
    SixBottleRuleViolation,
    WineNotFound,
)
from modules.reservations.models import Reservation
from modules.reservations.repositories.django_repository import ReservationDjangoRepository
from modules.reservations.serializers import (
    ConfirmCheckoutSerializer,
    ReservationSerializer,
    ValidateCartSerializer,
)
from modules.reservations.services import CheckoutService
from modules.zones.exceptions import MixedPickupZones, ZoneUnresolved
from modules.zones.matching import ZoneMatcher
from modules.zones.repositories.django_repository import ZoneDjangoRepository


def build_checkout_service() -> CheckoutService:
    reservation_repository = ReservationDjangoRepository()
    zone_repository = ZoneDjangoRepository()
    return CheckoutService(
        reservation_repository=reservation_repository,
        wine_repository=WineDjangoRepository(),
        zone_repository=zone_repository,
        zone_matcher=ZoneMatcher(zone_repository),
        pallet_service=PalletService(
            pallet_repository=PalletDjangoRepository(),
            reservation_repository=reservation_repository,
        ),
    )


def _lines(data) -> list[CheckoutLineDTO]:
    return [
        CheckoutLineDTO(wine_id=str(line["wine_id"]), quantity=line["quantity"])
        for line in data.get("lines", [])
    ]


class CheckoutValidateView(APIView):
    """POST /api/v1/checkout/validate/

    Returns the six-bottle breakdown without persisting anything.
    """

    throttle_scope = "checkout"

    def post(self, request: Request) -> Response:
        serializer = ValidateCartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = ValidateCartDTO(lines=_lines(serializer.validated_data))
        validation = build_checkout_service().validate_cart(dto)
        return Response(validation.model_dump(mode="json"))


class CheckoutConfirmView(APIView):
    """POST /api/v1/checkout/confirm/

    Supports idempotency via the ``Idempotency-Key`` header.
    Returns 200 if the key was already used, 201 for new reservations.
    """

    throttle_scope = "checkout"

    def post(self, request: Request) -> Response:
        serializer = ConfirmCheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        idempotency_key = request.headers.get("Idempotency-Key")
        try:
            dto = ConfirmCheckoutDTO(
                lines=_lines(data),
                user_id=str(request.user.pk) if request.user.is_authenticated else None,
                postcode=data.get("postcode", ""),
                city=data.get("city", ""),
                country_code=data.get("country_code", ""),
                delivery_zone_id=(
                    str(data["delivery_zone_id"]) if data.get("delivery_zone_id") else None
                ),
                pallet_id=str(data["pallet_id"]) if data.get("pallet_id") else None,
                idempotency_key=idempotency_key,
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        service = build_checkout_service()
        if idempotency_key:
            existing = ReservationDjangoRepository().get_by_idempotency_key(idempotency_key)
            if existing is not None:
                return Response(ReservationSerializer(existing).data, status=status.HTTP_200_OK)

        try:
            reservation = service.confirm(dto)
        except EmptyCart as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except WineNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except PalletNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except PalletNotRoutable as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except SixBottleRuleViolation as exc:
            body = {"detail": "Six-bottle rule violated."}
            body.update(exc.validation.model_dump(mode="json"))
            return Response(body, status=status.HTTP_422_UNPROCESSABLE_ENTITY)
        except MixedPickupZones as exc:
            return Response(
                {"detail": str(exc), "pickup_zone_ids": exc.pickup_zone_ids},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except ZoneUnresolved as exc:
            match = exc.match
            return Response(
                {
                    "detail": str(exc),
                    "pickup_zone_id": match.pickup_zone_id if match else None,
                    "available_delivery_zones": (
                        [option.model_dump() for option in match.available_delivery_zones]
                        if match
                        else []
                    ),
                },
                status=status.HTTP_409_CONFLICT,
            )

        return Response(ReservationSerializer(reservation).data, status=status.HTTP_201_CREATED)


class ReservationViewSet(GenericViewSet):
    """Read access to reservations; users see their own, staff see all."""

    queryset = Reservation.objects.all()
    serializer_class = ReservationSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_checkout_service()

    def _visible_to(self, reservation: Reservation, request: Request) -> bool:
        return request.user.is_staff or reservation.user_id == request.user.pk

    def list(self, request: Request) -> Response:
        """GET /api/v1/reservations/"""
        filters = {} if request.user.is_staff else {"user_id": request.user.pk}
        status_value = request.query_params.get("status")
        if status_value:
            filters["status"] = status_value
        pallet_id = request.query_params.get("pallet")
        if pallet_id:
            filters["pallet_id"] = pallet_id

        try:
            reservations = self._service.list_reservations(filters)
        except (ValueError, ValidationError):
            return Response({"detail": "Invalid filter."}, status=status.HTTP_400_BAD_REQUEST)
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(reservations, request)
        serializer = ReservationSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/reservations/{pk}/"""
        try:
            reservation = self._service.get_reservation(pk)
        except ReservationNotFound:
            return Response({"detail": "Reservation not found."}, status=status.HTTP_404_NOT_FOUND)
        if not self._visible_to(reservation, request):
            return Response({"detail": "Reservation not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(ReservationSerializer(reservation).data)
