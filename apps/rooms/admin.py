"""Admin registrations for the room catalog."""

from __future__ import annotations

from django.contrib import admin

from .models import RoomType, RoomUnit, RoomUnitHistory


class RoomUnitInline(admin.TabularInline):
    model = RoomUnit
    extra = 0
    fields = ("room_number", "floor", "status")


class RoomUnitHistoryInline(admin.TabularInline):
    model = RoomUnitHistory
    extra = 0
    fields = ("old_status", "new_status", "actor", "reason", "created_at")
    readonly_fields = fields
    can_delete = False


@admin.register(RoomType)
class RoomTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "base_price", "capacity", "deleted_at")
    list_filter = ("capacity",)
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = (RoomUnitInline,)

    def get_queryset(self, request):  # type: ignore
        return RoomType.objects.all()


@admin.register(RoomUnit)
class RoomUnitAdmin(admin.ModelAdmin):
    list_display = ("room_number", "room_type", "floor", "status")
    list_filter = ("status", "room_type", "floor")
    search_fields = ("room_number",)
    # Status goes through RoomUnitAssignment so history is always written
    readonly_fields = ("status",)
    inlines = (RoomUnitHistoryInline,)
