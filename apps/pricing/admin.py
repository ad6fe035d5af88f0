"""Admin registrations for rate overrides."""

from __future__ import annotations

from django.contrib import admin

from .models import DailyRate


@admin.register(DailyRate)
class DailyRateAdmin(admin.ModelAdmin):
    list_display = ("room_type", "date", "price", "currency")
    list_filter = ("room_type", "currency")
    date_hierarchy = "date"
    ordering = ("room_type", "date")
