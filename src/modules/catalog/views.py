"""Catalog API views.

Exposes ``CatalogService`` over HTTP: a read-only wine listing, the
price quote endpoint and an admin bulk margin action.  Domain exceptions
are translated into HTTP status codes.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.catalog.dtos import BulkMarginDTO, PriceQuoteDTO
from modules.catalog.exceptions import InvalidPricingInput, WineNotFound
from modules.catalog.models import Wine
from modules.catalog.repositories.django_repository import WineDjangoRepository
from modules.catalog.serializers import (
    BulkMarginSerializer,
    PriceQuoteSerializer,
    WineSerializer,
)
from modules.catalog.services import CatalogService


class PriceQuoteView(APIView):
    """POST /api/v1/pricing/quote/"""

    def post(self, request: Request) -> Response:
        serializer = PriceQuoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        if data.get("wine_id") is not None:
            data["wine_id"] = str(data["wine_id"])

        try:
            dto = PriceQuoteDTO(**data)
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        service = CatalogService(repository=WineDjangoRepository())
        try:
            breakdown = service.quote(dto)
        except WineNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidPricingInput as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(breakdown.model_dump(mode="json"))


class WineViewSet(ListModelMixin, GenericViewSet):
    """Read-only wine listing plus the bulk margin action."""

    queryset = Wine.objects.alive()
    serializer_class = WineSerializer
    filterset_fields = ["producer", "cost_currency", "exchange_rate_source"]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CatalogService(repository=WineDjangoRepository())

    def get_queryset(self):
        return Wine.objects.alive().select_related("producer")

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/wines/{pk}/"""
        try:
            wine = self._service.get_wine(pk)
        except WineNotFound:
            return Response({"detail": "Wine not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(WineSerializer(wine).data)

    @action(
        detail=False,
        methods=["post"],
        url_path="bulk-margin",
        permission_classes=[IsAdminUser],
    )
    def bulk_margin(self, request: Request) -> Response:
        """POST /api/v1/wines/bulk-margin/"""
        serializer = BulkMarginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = BulkMarginDTO(
                margin_percentage=serializer.validated_data["margin_percentage"],
                wine_ids=[str(i) for i in serializer.validated_data["wine_ids"]],
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        wines = self._service.bulk_update_margin(dto)
        return Response({"updated": len(wines), "results": WineSerializer(wines, many=True).data})
