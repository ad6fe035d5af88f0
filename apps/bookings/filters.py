"""FilterSet definitions for booking listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilterSet(django_filters.FilterSet):
    """Filters used by front desk listings."""

    status = django_filters.ChoiceFilter(field_name="status", choices=Booking.Status.choices)
    room_type = django_filters.UUIDFilter(field_name="room_type_id")
    guest = django_filters.UUIDFilter(field_name="guest_id")
    reference = django_filters.CharFilter(field_name="reference", lookup_expr="iexact")
    check_in_from = django_filters.DateFilter(field_name="check_in", lookup_expr="gte")
    check_in_to = django_filters.DateFilter(field_name="check_in", lookup_expr="lte")

    class Meta:
        model = Booking
        fields = ["status", "room_type", "guest", "reference"]
