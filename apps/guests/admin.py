"""Admin registrations for guests."""

from __future__ import annotations

from django.contrib import admin

from .models import GuestProfile


@admin.register(GuestProfile)
class GuestProfileAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "phone", "loyalty_points", "user")
    search_fields = ("first_name", "last_name", "phone", "user__email")
    raw_id_fields = ("user",)
