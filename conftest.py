"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from apps.guests.models import GuestProfile
from apps.inventory.models import RoomInventoryDay
from apps.rooms.models import RoomType, RoomUnit


@pytest.fixture
def room_type(db):
    return RoomType.objects.create(name="Deluxe King", base_price=Decimal("100.00"), capacity=2)


@pytest.fixture
def other_room_type(db):
    return RoomType.objects.create(name="Twin", base_price=Decimal("80.00"), capacity=2)


@pytest.fixture
def guest(db):
    return GuestProfile.objects.create(first_name="Ada", last_name="Lovelace", phone="+15550100")


@pytest.fixture
def make_unit(db):
    def _make(room_type, room_number, status=RoomUnit.Status.AVAILABLE):
        return RoomUnit.objects.create(room_type=room_type, room_number=room_number, floor=1, status=status)

    return _make


@pytest.fixture
def stock(db):
    """Create one RoomInventoryDay per night starting at start."""

    def _stock(room_type, start: date, nights: int, total: int = 2, available: int | None = None):
        rows = [
            RoomInventoryDay(
                room_type=room_type,
                date=start + timedelta(days=offset),
                total_stock=total,
                available_count=total if available is None else available,
            )
            for offset in range(nights)
        ]
        return RoomInventoryDay.objects.bulk_create(rows)

    return _stock


@pytest.fixture
def counts(db):
    """available_count per night, in date order."""

    def _counts(room_type, start: date, nights: int) -> list[int]:
        return list(
            RoomInventoryDay.objects.filter(
                room_type=room_type,
                date__gte=start,
                date__lt=start + timedelta(days=nights),
            )
            .order_by("date")
            .values_list("available_count", flat=True)
        )

    return _counts
