"""Admin registrations for payments."""

from __future__ import annotations

from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("booking", "amount", "currency", "method", "status", "paid_at")
    list_filter = ("status", "method")
    search_fields = ("provider_transaction_id", "booking__reference")
    raw_id_fields = ("booking",)
