"""Serializers for the booking lifecycle."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Detailed, read-only view of a booking."""

    guest_id = serializers.UUIDField(read_only=True)
    room_type_id = serializers.UUIDField(read_only=True)
    room_type_name = serializers.ReadOnlyField(source="room_type.name")
    room_unit_id = serializers.UUIDField(read_only=True, allow_null=True)
    room_number = serializers.ReadOnlyField(source="room_unit.room_number", default=None)
    nights = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "reference",
            "guest_id",
            "room_type_id",
            "room_type_name",
            "room_unit_id",
            "room_number",
            "check_in",
            "check_out",
            "nights",
            "total_price",
            "currency",
            "status",
            "special_requests",
            "cancellation_reason",
            "confirmed_at",
            "checked_in_at",
            "checked_out_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    """Request to create a booking."""

    guest = serializers.UUIDField()
    room_type = serializers.UUIDField()
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):  # type: ignore
        if attrs["check_in"] >= attrs["check_out"]:
            raise serializers.ValidationError("Check-out date must be after check-in date")
        return attrs


class BookingModifySerializer(serializers.Serializer):
    """Partial change of a pending booking."""

    check_in = serializers.DateField(required=False)
    check_out = serializers.DateField(required=False)
    room_type = serializers.UUIDField(required=False)
    special_requests = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):  # type: ignore
        if not attrs:
            raise serializers.ValidationError("Nothing to modify")
        return attrs


class CheckInSerializer(serializers.Serializer):
    room_unit = serializers.UUIDField(required=False, allow_null=True)


class AssignUnitSerializer(serializers.Serializer):
    room_unit = serializers.UUIDField()


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)
