"""Database-backed tests for the InventoryLedger service."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db.models import F
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from apps.inventory.domain import (
    DuplicateInventoryDay,
    InsufficientStock,
    MissingInventory,
    StaleInventory,
)
from apps.inventory.models import RoomInventoryDay
from apps.inventory.repositories import DjangoInventoryRepository
from apps.inventory.services import InventoryLedger
from apps.inventory.tasks import extend_inventory_horizon
from apps.rooms.exceptions import RoomTypeNotFound
from apps.rooms.models import RoomUnit
from shared.domain.exceptions import DomainValidationError
from shared.domain.value_objects import DateRange

pytestmark = pytest.mark.django_db

JUNE_1 = date(2024, 6, 1)


def nights(start: date, count: int) -> DateRange:
    return DateRange(start, start + timedelta(days=count))


class StaleOnLoadRepository(DjangoInventoryRepository):
    """Bumps the last loaded row behind the ledger's back, conflicts times."""

    def __init__(self, conflicts: int):
        self.conflicts = conflicts
        self.loads = 0

    def load_days(self, windows, lock=True):
        days = super().load_days(windows, lock=lock)
        self.loads += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            last = max(days.values(), key=lambda day: day.date)
            RoomInventoryDay.objects.filter(pk=last.id).update(version=F("version") + 1)
        return days


# ===== reserve / release =====


def test_reserve_range_decrements_each_night(room_type, stock, counts):
    stock(room_type, JUNE_1, 3, total=2)

    InventoryLedger().reserve_range(room_type.id, nights(JUNE_1, 3))

    assert counts(room_type, JUNE_1, 3) == [1, 1, 1]
    versions = set(RoomInventoryDay.objects.filter(room_type=room_type).values_list("version", flat=True))
    assert versions == {1}


def test_reserve_range_is_all_or_nothing(room_type, stock, counts):
    stock(room_type, JUNE_1, 3, total=2)
    RoomInventoryDay.objects.filter(room_type=room_type, date=JUNE_1 + timedelta(days=2)).update(available_count=0)

    with pytest.raises(InsufficientStock) as excinfo:
        InventoryLedger().reserve_range(room_type.id, nights(JUNE_1, 3))

    assert excinfo.value.dates == [JUNE_1 + timedelta(days=2)]
    assert counts(room_type, JUNE_1, 3) == [2, 2, 0]


def test_reserve_range_fails_on_missing_row(room_type, stock, counts):
    stock(room_type, JUNE_1, 2, total=2)

    with pytest.raises(MissingInventory):
        InventoryLedger().reserve_range(room_type.id, nights(JUNE_1, 3))

    assert counts(room_type, JUNE_1, 2) == [2, 2]


def test_reserve_last_room_then_sold_out(room_type, stock, counts):
    stock(room_type, JUNE_1, 2, total=1)
    ledger = InventoryLedger()

    ledger.reserve_range(room_type.id, nights(JUNE_1, 2))
    with pytest.raises(InsufficientStock):
        ledger.reserve_range(room_type.id, nights(JUNE_1, 2))

    assert counts(room_type, JUNE_1, 2) == [0, 0]


def test_release_range_restores_exactly(room_type, stock, counts):
    stock(room_type, JUNE_1, 3, total=3, available=1)
    ledger = InventoryLedger()

    ledger.reserve_range(room_type.id, nights(JUNE_1, 3))
    ledger.release_range(room_type.id, nights(JUNE_1, 3))

    assert counts(room_type, JUNE_1, 3) == [1, 1, 1]


def test_release_range_is_capped_at_total_stock(room_type, stock, counts):
    stock(room_type, JUNE_1, 2, total=2)
    RoomInventoryDay.objects.filter(room_type=room_type, date=JUNE_1).update(available_count=1)

    InventoryLedger().release_range(room_type.id, nights(JUNE_1, 2))

    assert counts(room_type, JUNE_1, 2) == [2, 2]


# ===== move =====


def test_move_range_with_overlap_keeps_shared_nights(room_type, stock, counts):
    stock(room_type, JUNE_1, 4, total=2)
    ledger = InventoryLedger()
    ledger.reserve_range(room_type.id, nights(JUNE_1, 2))

    ledger.move_range(
        room_type.id, nights(JUNE_1, 2),
        room_type.id, nights(JUNE_1 + timedelta(days=1), 2),
    )

    assert counts(room_type, JUNE_1, 4) == [2, 1, 1, 2]


def test_move_range_between_room_types(room_type, other_room_type, stock, counts):
    stock(room_type, JUNE_1, 2, total=2)
    stock(other_room_type, JUNE_1, 2, total=1)
    ledger = InventoryLedger()
    ledger.reserve_range(room_type.id, nights(JUNE_1, 2))

    ledger.move_range(room_type.id, nights(JUNE_1, 2), other_room_type.id, nights(JUNE_1, 2))

    assert counts(room_type, JUNE_1, 2) == [2, 2]
    assert counts(other_room_type, JUNE_1, 2) == [0, 0]


def test_move_range_failure_leaves_both_windows_untouched(room_type, other_room_type, stock, counts):
    stock(room_type, JUNE_1, 2, total=2)
    stock(other_room_type, JUNE_1, 2, total=1, available=0)
    ledger = InventoryLedger()
    ledger.reserve_range(room_type.id, nights(JUNE_1, 2))

    with pytest.raises(InsufficientStock):
        ledger.move_range(room_type.id, nights(JUNE_1, 2), other_room_type.id, nights(JUNE_1, 2))

    assert counts(room_type, JUNE_1, 2) == [1, 1]
    assert counts(other_room_type, JUNE_1, 2) == [0, 0]


# ===== optimistic retry =====


def test_stale_write_is_retried_from_fresh_read(room_type, stock, counts):
    stock(room_type, JUNE_1, 3, total=2)
    repository = StaleOnLoadRepository(conflicts=1)

    InventoryLedger(repository=repository, max_retries=3).reserve_range(room_type.id, nights(JUNE_1, 3))

    assert repository.loads == 2
    assert counts(room_type, JUNE_1, 3) == [1, 1, 1]


def test_stale_write_gives_up_after_max_retries(room_type, stock, counts):
    stock(room_type, JUNE_1, 3, total=2)
    repository = StaleOnLoadRepository(conflicts=10)

    with pytest.raises(StaleInventory):
        InventoryLedger(repository=repository, max_retries=2).reserve_range(room_type.id, nights(JUNE_1, 3))

    assert repository.loads == 2
    # Nights written before the conflict were rolled back with the savepoint
    assert counts(room_type, JUNE_1, 3) == [2, 2, 2]


# ===== availability =====


def test_check_availability_reports_bottleneck(room_type, stock):
    stock(room_type, JUNE_1, 3, total=3)
    RoomInventoryDay.objects.filter(room_type=room_type, date=JUNE_1 + timedelta(days=1)).update(available_count=1)

    result = InventoryLedger().check_availability(room_type.id, nights(JUNE_1, 3), quantity=2)

    assert result.available is False
    assert result.min_rooms_available == 1
    assert [day["available_count"] for day in result.days] == [3, 1, 3]


def test_check_availability_treats_missing_nights_as_zero(room_type, stock):
    stock(room_type, JUNE_1, 1, total=3)

    result = InventoryLedger().check_availability(room_type.id, nights(JUNE_1, 2))

    assert result.available is False
    assert result.min_rooms_available == 0
    assert result.missing_dates == (JUNE_1 + timedelta(days=1),)


def test_check_availability_rejects_deleted_room_type(room_type, stock):
    stock(room_type, JUNE_1, 2)
    room_type.soft_delete()

    with pytest.raises(RoomTypeNotFound):
        InventoryLedger().check_availability(room_type.id, nights(JUNE_1, 2))


def test_availability_endpoint(room_type, stock):
    today = timezone.localdate()
    stock(room_type, today, 2, total=2)
    client = APIClient()

    response = client.get(
        reverse("inventory-availability"),
        {
            "room_type": str(room_type.id),
            "check_in": today.isoformat(),
            "check_out": (today + timedelta(days=2)).isoformat(),
        },
    )

    assert response.status_code == 200
    assert response.data["available"] is True
    assert response.data["min_rooms_available"] == 2
    assert len(response.data["days"]) == 2


def test_availability_endpoint_rejects_inverted_dates(room_type):
    today = timezone.localdate()
    response = APIClient().get(
        reverse("inventory-availability"),
        {
            "room_type": str(room_type.id),
            "check_in": (today + timedelta(days=3)).isoformat(),
            "check_out": (today + timedelta(days=1)).isoformat(),
        },
    )

    assert response.status_code == 400


def test_availability_endpoint_rejects_past_check_in(room_type, stock):
    today = timezone.localdate()
    stock(room_type, today - timedelta(days=2), 4, total=2)

    response = APIClient().get(
        reverse("inventory-availability"),
        {
            "room_type": str(room_type.id),
            "check_in": (today - timedelta(days=2)).isoformat(),
            "check_out": today.isoformat(),
        },
    )

    assert response.status_code == 400
    assert "Check-in date cannot be in the past" in str(response.data)


def test_availability_endpoint_unknown_room_type(db):
    today = timezone.localdate()
    response = APIClient().get(
        reverse("inventory-availability"),
        {
            "room_type": "00000000-0000-0000-0000-000000000000",
            "check_in": today.isoformat(),
            "check_out": (today + timedelta(days=2)).isoformat(),
        },
    )

    assert response.status_code == 404
    assert response.data["code"] == "room_type_not_found"


# ===== administrative seeding =====


def test_create_day_defaults_available_to_total(room_type):
    row = InventoryLedger().create_day(room_type.id, "2024-06-01", total_stock=4)

    assert row.available_count == 4
    assert row.version == 0


def test_create_day_rejects_duplicate(room_type, stock):
    stock(room_type, JUNE_1, 1)

    with pytest.raises(DuplicateInventoryDay):
        InventoryLedger().create_day(room_type.id, JUNE_1, total_stock=2)


@pytest.mark.parametrize(
    "day,total,available",
    [
        ("2024-02-30", 2, 2),
        ("01/06/2024", 2, 2),
        ("2024-06-01", 0, 0),
        ("2024-06-01", 2, 3),
        ("2024-06-01", 2, -1),
    ],
)
def test_create_day_validation(room_type, day, total, available):
    with pytest.raises(DomainValidationError):
        InventoryLedger().create_day(room_type.id, day, total_stock=total, available_count=available)


def test_adjust_day_clamps_available_when_total_drops(room_type, stock):
    stock(room_type, JUNE_1, 1, total=5, available=4)

    row = InventoryLedger().adjust_day(room_type.id, JUNE_1, total_stock=2)

    assert (row.total_stock, row.available_count, row.version) == (2, 2, 1)


def test_adjust_day_rejects_available_above_total(room_type, stock):
    stock(room_type, JUNE_1, 1, total=2)

    with pytest.raises(DomainValidationError):
        InventoryLedger().adjust_day(room_type.id, JUNE_1, available_count=3)


def test_adjust_day_missing_row(room_type):
    with pytest.raises(MissingInventory):
        InventoryLedger().adjust_day(room_type.id, JUNE_1, available_count=1)


def test_seed_days_creates_updates_and_drops_duplicates(room_type, stock):
    stock(room_type, JUNE_1, 1, total=2)
    rows = [
        {"date": "2024-06-01", "total_stock": 6, "available_count": 5},
        {"date": "2024-06-02", "total_stock": 3},
        {"date": "2024-06-02", "total_stock": 4, "available_count": 1},
    ]

    result = InventoryLedger().seed_days(room_type.id, rows)

    assert (result.created, result.updated, result.duplicates_removed) == (1, 1, 1)
    assert result.processed == 2
    first = RoomInventoryDay.objects.get(room_type=room_type, date=JUNE_1)
    assert (first.total_stock, first.available_count, first.version) == (6, 5, 1)
    second = RoomInventoryDay.objects.get(room_type=room_type, date=JUNE_1 + timedelta(days=1))
    assert (second.total_stock, second.available_count) == (4, 1)


def test_seed_days_is_all_or_nothing(room_type):
    rows = [
        {"date": "2024-06-01", "total_stock": 2},
        {"date": "2024-06-02", "total_stock": 2, "available_count": 3},
    ]

    with pytest.raises(DomainValidationError) as excinfo:
        InventoryLedger().seed_days(room_type.id, rows)

    assert excinfo.value.message.startswith("Row 2: ")
    assert not RoomInventoryDay.objects.filter(room_type=room_type).exists()


@pytest.mark.parametrize(
    "row",
    [
        {"date": "2024-06-01", "total_stock": 2.9},
        {"date": "2024-06-01", "total_stock": "2.5"},
        {"date": "2024-06-01", "total_stock": 3, "available_count": Decimal("1.5")},
        {"date": "2024-06-01", "total_stock": True},
    ],
)
def test_seed_days_refuses_fractional_stock(room_type, row):
    with pytest.raises(DomainValidationError, match="Row 1: Stock values must be whole numbers"):
        InventoryLedger().seed_days(room_type.id, [row])

    assert not RoomInventoryDay.objects.filter(room_type=room_type).exists()


def test_seed_days_accepts_whole_floats_and_strings(room_type, counts):
    InventoryLedger().seed_days(room_type.id, [
        {"date": "2024-06-01", "total_stock": 3.0, "available_count": "2"},
    ])

    assert counts(room_type, JUNE_1, 1) == [2]


def test_seed_days_rejects_empty_batch(room_type):
    with pytest.raises(DomainValidationError):
        InventoryLedger().seed_days(room_type.id, [])


def test_seed_inventory_command(room_type, tmp_path, counts):
    csv_file = tmp_path / "stock.csv"
    csv_file.write_text("date,total_stock,available_count\n2024-06-01,3,3\n2024-06-02,3,2\n")

    call_command("seed_inventory", room_type.slug, str(csv_file))

    assert counts(room_type, JUNE_1, 2) == [3, 2]


def test_seed_inventory_command_reports_bad_rows(room_type, tmp_path):
    csv_file = tmp_path / "stock.csv"
    csv_file.write_text("date,total_stock,available_count\n2024-06-01,abc,\n")

    with pytest.raises(CommandError, match="Row 1"):
        call_command("seed_inventory", room_type.slug, str(csv_file))


def test_seed_inventory_command_unknown_room_type(db, tmp_path):
    with pytest.raises(CommandError):
        call_command("seed_inventory", "no-such-room", str(tmp_path / "missing.csv"))


# ===== forecast and horizon =====


def test_forecast_summarises_window(room_type, stock):
    stock(room_type, JUNE_1, 4, total=4)
    RoomInventoryDay.objects.filter(room_type=room_type, date=JUNE_1).update(available_count=0)

    forecast = InventoryLedger().forecast(room_type.id, days=10, today=JUNE_1)

    assert forecast.days_with_data == 4
    assert forecast.min_available == 0
    assert forecast.max_available == 4
    assert forecast.average_available == 3
    assert forecast.occupancy_rate == 25


@pytest.mark.parametrize("days", [0, 366])
def test_forecast_rejects_out_of_range_days(room_type, days):
    with pytest.raises(DomainValidationError):
        InventoryLedger().forecast(room_type.id, days=days)


def test_extend_horizon_counts_sellable_units_and_keeps_existing_rows(room_type, other_room_type, make_unit, stock):
    make_unit(room_type, "101")
    make_unit(room_type, "102", status=RoomUnit.Status.DIRTY)
    make_unit(room_type, "103", status=RoomUnit.Status.MAINTENANCE)
    stock(room_type, JUNE_1, 1, total=5, available=0)

    created = InventoryLedger().extend_horizon(days=4, today=JUNE_1)

    # other_room_type has no units and gets nothing
    assert created == 3
    existing = RoomInventoryDay.objects.get(room_type=room_type, date=JUNE_1)
    assert (existing.total_stock, existing.available_count) == (5, 0)
    new_rows = RoomInventoryDay.objects.filter(room_type=room_type, date__gt=JUNE_1)
    assert {(row.total_stock, row.available_count) for row in new_rows} == {(2, 2)}
    assert not RoomInventoryDay.objects.filter(room_type=other_room_type).exists()


def test_extend_horizon_counts_only_rows_it_inserted(room_type, make_unit, monkeypatch):
    make_unit(room_type, "101")
    manager = RoomInventoryDay.objects
    insert = manager.bulk_create

    def seeded_meanwhile(rows, **kwargs):
        RoomInventoryDay.objects.create(
            room_type=room_type, date=JUNE_1 + timedelta(days=1), total_stock=7, available_count=7,
        )
        return insert(rows, **kwargs)

    monkeypatch.setattr(manager, "bulk_create", seeded_meanwhile)

    created = InventoryLedger().extend_horizon(days=3, today=JUNE_1)

    assert created == 2
    assert RoomInventoryDay.objects.filter(room_type=room_type).count() == 3
    assert RoomInventoryDay.objects.get(room_type=room_type, date=JUNE_1 + timedelta(days=1)).total_stock == 7


def test_extend_horizon_task_is_idempotent(room_type, make_unit):
    make_unit(room_type, "201")

    first = extend_inventory_horizon.apply(kwargs={"days": 3}).get()
    second = extend_inventory_horizon.apply(kwargs={"days": 3}).get()

    assert first == {"created": 3}
    assert second == {"created": 0}
