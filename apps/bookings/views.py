"""API views for the booking lifecycle."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from drf_spectacular.utils import extend_schema  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .application import use_cases
from .filters import BookingFilterSet
from .models import Booking
from .serializers import (
    AssignUnitSerializer,
    BookingCreateSerializer,
    BookingModifySerializer,
    BookingSerializer,
    CancelSerializer,
    CheckInSerializer,
)


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Viewset for the booking lifecycle.

    Writes go through the use cases; the viewset only parses input and
    renders the stored booking afterwards. Who may call which action is
    decided by the configured authentication and permission classes.
    """

    queryset = Booking.objects.select_related("room_type", "room_unit", "guest").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_class = BookingFilterSet

    def _render(self, booking_id, http_status=status.HTTP_200_OK):  # type: ignore
        booking = self.get_queryset().get(pk=booking_id)
        return Response(BookingSerializer(booking, context=self.get_serializer_context()).data, status=http_status)

    def _input(self, serializer_class):  # type: ignore
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    @extend_schema(request=BookingCreateSerializer, responses={201: BookingSerializer})
    def create(self, request, *args, **kwargs):  # type: ignore
        data = self._input(BookingCreateSerializer)
        booking = use_cases.create_booking(
            guest_id=data["guest"],
            room_type_id=data["room_type"],
            check_in=data["check_in"],
            check_out=data["check_out"],
            special_requests=data["special_requests"],
        )
        return self._render(booking.id, status.HTTP_201_CREATED)

    @extend_schema(request=BookingModifySerializer, responses=BookingSerializer)
    def partial_update(self, request, pk=None):  # type: ignore
        data = self._input(BookingModifySerializer)
        booking = use_cases.modify_booking(
            pk,
            check_in=data.get("check_in"),
            check_out=data.get("check_out"),
            room_type_id=data.get("room_type"),
            special_requests=data.get("special_requests"),
        )
        return self._render(booking.id)

    @extend_schema(request=None, responses=BookingSerializer)
    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        booking = use_cases.confirm_booking(pk)
        return self._render(booking.id)

    @extend_schema(request=CheckInSerializer, responses=BookingSerializer)
    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request, pk=None):  # type: ignore
        data = self._input(CheckInSerializer)
        booking = use_cases.check_in(pk, room_unit_id=data.get("room_unit"))
        return self._render(booking.id)

    @extend_schema(request=AssignUnitSerializer, responses=BookingSerializer)
    @action(detail=True, methods=["post"], url_path="assign-unit")
    def assign_unit(self, request, pk=None):  # type: ignore
        data = self._input(AssignUnitSerializer)
        booking = use_cases.assign_room_unit(pk, data["room_unit"])
        return self._render(booking.id)

    @extend_schema(request=None, responses=BookingSerializer)
    @action(detail=True, methods=["post"], url_path="check-out")
    def check_out(self, request, pk=None):  # type: ignore
        booking = use_cases.check_out(pk)
        return self._render(booking.id)

    @extend_schema(request=CancelSerializer, responses=BookingSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        data = self._input(CancelSerializer)
        booking = use_cases.cancel_booking(pk, reason=data["reason"])
        return self._render(booking.id)
