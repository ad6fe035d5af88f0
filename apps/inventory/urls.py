"""URL routing for room stock."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import AvailabilityView, ForecastView

urlpatterns = [
    path("availability/", AvailabilityView.as_view(), name="inventory-availability"),
    path("forecast/", ForecastView.as_view(), name="inventory-forecast"),
]
