"""Pallet API views.

Exposes ``PalletService`` via HTTP: listing and detail with live fill,
the completion check, and admin actions (open a pallet, edit its
completion rules, advance its status).  Domain exceptions are
translated into HTTP status codes.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.pallets.dtos import CreatePalletDTO, UpdateCompletionRulesDTO
from modules.pallets.exceptions import (
    InvalidPalletStatus,
    PalletAlreadyExists,
    PalletNotFound,
)
from modules.pallets.filters import PalletFilter
from modules.pallets.models import Pallet
from modules.pallets.repositories.django_repository import PalletDjangoRepository
from modules.pallets.serializers import (
    AdvanceStatusSerializer,
    CompletionRulesSerializer,
    CreatePalletSerializer,
    PalletFillSerializer,
    PalletSerializer,
)
from modules.pallets.services import PalletService
from modules.reservations.repositories.django_repository import ReservationDjangoRepository

ADMIN_ACTIONS = {"create", "completion_rules", "advance_status"}


class PalletViewSet(GenericViewSet):
    """ViewSet for Pallet operations.

    Does **not** extend ``ModelViewSet``: writes go through
    ``PalletService``.
    """

    queryset = Pallet.objects.all()
    serializer_class = PalletSerializer
    filterset_class = PalletFilter
    ordering_fields = ["created_at", "status", "name"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = PalletService(
            pallet_repository=PalletDjangoRepository(),
            reservation_repository=ReservationDjangoRepository(),
        )

    def get_permissions(self):
        if self.action in ADMIN_ACTIONS:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "pallet_listing" if self.action in {"list", "retrieve"} else None
        return super().get_throttles()

    def get_queryset(self):
        return Pallet.objects.select_related("pickup_zone", "delivery_zone")

    def _not_found(self) -> Response:
        return Response({"detail": "Pallet not found."}, status=status.HTTP_404_NOT_FOUND)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/pallets/

        Filtering by status and pickup / delivery zone is handled by
        ``PalletFilter``.  Fill is computed for the current page only.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        fills = self._service.get_fills(list(page))
        serializer = PalletSerializer(page, many=True, context={"fills": fills})
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/pallets/{pk}/"""
        try:
            pallet = self._service.get_pallet(pk)
        except PalletNotFound:
            return self._not_found()
        fill = self._service.get_fill(pallet)
        serializer = PalletSerializer(pallet, context={"fills": {str(pallet.id): fill}})
        return Response(serializer.data)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="check-completion")
    def check_completion(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/pallets/{pk}/check-completion/"""
        try:
            result = self._service.check_completion(pk)
        except PalletNotFound:
            return self._not_found()
        return Response(
            {
                "pallet_id": result.pallet_id,
                "is_complete": result.fill.is_complete,
                "triggered": result.triggered,
                "already_notified": result.already_notified,
                "fill": PalletFillSerializer(result.fill).data,
            }
        )

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/pallets/"""
        serializer = CreatePalletSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            dto = CreatePalletDTO(
                name=data["name"],
                pickup_zone_id=str(data["pickup_zone_id"]),
                delivery_zone_id=str(data["delivery_zone_id"]),
                bottle_capacity=data.get("bottle_capacity"),
                completion_rules=data.get("completion_rules"),
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            pallet = self._service.create_pallet(dto)
        except PalletAlreadyExists as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        pallet = self._service.get_pallet(str(pallet.id))
        return Response(PalletSerializer(pallet).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["put"], url_path="completion-rules")
    def completion_rules(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/pallets/{pk}/completion-rules/

        Accepts the rule tree or the group format; stores the tree.
        """
        serializer = CompletionRulesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = UpdateCompletionRulesDTO(
                completion_rules=serializer.validated_data["completion_rules"]
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            self._service.update_completion_rules(pk, dto)
            pallet = self._service.get_pallet(pk)
        except PalletNotFound:
            return self._not_found()
        return Response(PalletSerializer(pallet).data)

    @action(detail=True, methods=["post"], url_path="advance-status")
    def advance_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/pallets/{pk}/advance-status/"""
        serializer = AdvanceStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            self._service.advance_status(pk, serializer.validated_data["status"])
            pallet = self._service.get_pallet(pk)
        except PalletNotFound:
            return self._not_found()
        except InvalidPalletStatus as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(PalletSerializer(pallet).data)
