"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "reference",
        "room_type",
        "guest",
        "status",
        "check_in",
        "check_out",
        "room_unit",
        "total_price",
        "created_at",
    )
    list_filter = ("status", "room_type", "check_in")
    search_fields = ("reference", "guest__last_name", "guest__phone")
    # Lifecycle fields change only through the booking use cases
    readonly_fields = (
        "reference",
        "guest",
        "room_type",
        "room_unit",
        "check_in",
        "check_out",
        "status",
        "total_price",
        "currency",
        "confirmed_at",
        "checked_in_at",
        "checked_out_at",
        "cancelled_at",
        "cancellation_reason",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
