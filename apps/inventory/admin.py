"""Admin registrations for room stock."""

from __future__ import annotations

from django.contrib import admin

from .models import RoomInventoryDay


@admin.register(RoomInventoryDay)
class RoomInventoryDayAdmin(admin.ModelAdmin):
    list_display = ("room_type", "date", "available_count", "total_stock", "version", "updated_at")
    list_filter = ("room_type",)
    date_hierarchy = "date"
    ordering = ("room_type", "date")
    readonly_fields = ("version", "updated_at")

    def get_readonly_fields(self, request, obj=None):  # type: ignore
        if obj is None:
            return self.readonly_fields
        # Stock moves through InventoryLedger so the version check is never bypassed
        return ("room_type", "date", "available_count", "total_stock") + self.readonly_fields

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
