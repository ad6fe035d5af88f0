"""API views for room stock."""

from __future__ import annotations

from drf_spectacular.utils import extend_schema  # type: ignore
from rest_framework import permissions  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from shared.domain.value_objects import DateRange

from .serializers import (
    AvailabilityQuerySerializer,
    AvailabilitySerializer,
    ForecastQuerySerializer,
    ForecastSerializer,
)
from .services import InventoryLedger


class AvailabilityView(APIView):
    """Advisory availability of a room type for a stay; nothing is held."""

    permission_classes = [permissions.AllowAny]

    @extend_schema(parameters=[AvailabilityQuerySerializer], responses=AvailabilitySerializer)
    def get(self, request):  # type: ignore
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        availability = InventoryLedger().check_availability(
            params["room_type"],
            DateRange(params["check_in"], params["check_out"]),
            quantity=params["quantity"],
        )
        return Response(AvailabilitySerializer(availability).data)


class ForecastView(APIView):
    """Projected stock for the coming days, for staff."""

    permission_classes = [permissions.IsAdminUser]

    @extend_schema(parameters=[ForecastQuerySerializer], responses=ForecastSerializer)
    def get(self, request):  # type: ignore
        query = ForecastQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        forecast = InventoryLedger().forecast(
            query.validated_data["room_type"],
            days=query.validated_data["days"],
        )
        return Response(ForecastSerializer(forecast).data)
