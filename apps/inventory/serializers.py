"""Serializers for stock queries."""

from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers  # type: ignore


class AvailabilityQuerySerializer(serializers.Serializer):
    room_type = serializers.UUIDField()
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    quantity = serializers.IntegerField(min_value=1, default=1)

    def validate(self, attrs):  # type: ignore
        if attrs["check_in"] >= attrs["check_out"]:
            raise serializers.ValidationError("Check-out date must be after check-in date")
        if attrs["check_in"] < timezone.localdate():
            raise serializers.ValidationError("Check-in date cannot be in the past")
        return attrs


class InventoryDaySerializer(serializers.Serializer):
    date = serializers.DateField()
    available_count = serializers.IntegerField()
    total_stock = serializers.IntegerField()


class AvailabilitySerializer(serializers.Serializer):
    room_type_id = serializers.UUIDField()
    check_in = serializers.DateField(source="dates.start_date")
    check_out = serializers.DateField(source="dates.end_date")
    quantity = serializers.IntegerField()
    available = serializers.BooleanField()
    min_rooms_available = serializers.IntegerField()
    missing_dates = serializers.ListField(child=serializers.DateField())
    days = InventoryDaySerializer(many=True)


class ForecastQuerySerializer(serializers.Serializer):
    room_type = serializers.UUIDField()
    days = serializers.IntegerField(min_value=1, max_value=365, default=30)


class ForecastSerializer(serializers.Serializer):
    room_type_id = serializers.UUIDField()
    start_date = serializers.DateField()
    days = serializers.IntegerField()
    days_with_data = serializers.IntegerField()
    min_available = serializers.IntegerField()
    max_available = serializers.IntegerField()
    average_available = serializers.IntegerField()
    occupancy_rate = serializers.IntegerField()
    forecast = InventoryDaySerializer(source="rows", many=True)
