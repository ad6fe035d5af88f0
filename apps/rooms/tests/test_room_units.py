"""Tests for room unit assignment and housekeeping transitions."""

from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest

from apps.rooms.exceptions import RoomTypeMismatch, RoomTypeNotFound, RoomUnitNotFound, UnitUnavailable
from apps.rooms.models import RoomType, RoomUnit, RoomUnitHistory
from apps.rooms.services import RoomUnitAssignment, get_active_room_type
from shared.domain.exceptions import DomainValidationError

pytestmark = pytest.mark.django_db


def booking_for(room_type):
    return SimpleNamespace(room_type_id=room_type.id, reference="BK-20240601-TEST1")


def test_slug_is_derived_from_name(room_type):
    assert room_type.slug == "deluxe-king"


def test_soft_deleted_room_type_is_hidden(room_type):
    room_type.soft_delete()

    assert room_type.is_deleted
    assert not RoomType.active.filter(pk=room_type.pk).exists()
    with pytest.raises(RoomTypeNotFound):
        get_active_room_type(room_type.id)


def test_get_active_room_type_with_malformed_id(db):
    with pytest.raises(RoomTypeNotFound):
        get_active_room_type("not-a-uuid")


def test_assign_occupies_unit_and_records_history(room_type, make_unit):
    unit = make_unit(room_type, "101")

    RoomUnitAssignment().assign(booking_for(room_type), unit.id)

    unit.refresh_from_db()
    assert unit.status == RoomUnit.Status.OCCUPIED
    entry = RoomUnitHistory.objects.get(room_unit=unit)
    assert (entry.old_status, entry.new_status) == (RoomUnit.Status.AVAILABLE, RoomUnit.Status.OCCUPIED)
    assert "BK-20240601-TEST1" in entry.reason


def test_assign_rejects_unit_of_other_type(room_type, other_room_type, make_unit):
    unit = make_unit(other_room_type, "201")

    with pytest.raises(RoomTypeMismatch):
        RoomUnitAssignment().assign(booking_for(room_type), unit.id)

    unit.refresh_from_db()
    assert unit.status == RoomUnit.Status.AVAILABLE


@pytest.mark.parametrize("status", [RoomUnit.Status.DIRTY, RoomUnit.Status.MAINTENANCE, RoomUnit.Status.OCCUPIED])
def test_assign_rejects_unit_that_is_not_available(room_type, make_unit, status):
    unit = make_unit(room_type, "102", status=status)

    with pytest.raises(UnitUnavailable):
        RoomUnitAssignment().assign(booking_for(room_type), unit.id)


def test_assign_unknown_unit(room_type):
    with pytest.raises(RoomUnitNotFound):
        RoomUnitAssignment().assign(booking_for(room_type), uuid4())


def test_release_marks_unit_dirty(room_type, make_unit):
    unit = make_unit(room_type, "103", status=RoomUnit.Status.OCCUPIED)

    RoomUnitAssignment().release(unit.id)

    unit.refresh_from_db()
    assert unit.status == RoomUnit.Status.DIRTY


def test_release_requires_occupied_unit(room_type, make_unit):
    unit = make_unit(room_type, "104")

    with pytest.raises(UnitUnavailable):
        RoomUnitAssignment().release(unit.id)


def test_change_status_cleans_dirty_unit(room_type, make_unit):
    unit = make_unit(room_type, "105", status=RoomUnit.Status.DIRTY)

    RoomUnitAssignment().change_status(unit.id, "available", actor="housekeeping", reason="Cleaned")

    unit.refresh_from_db()
    assert unit.status == RoomUnit.Status.AVAILABLE
    assert unit.history.get().actor == "housekeeping"


@pytest.mark.parametrize("status", ["", "BROKEN", "OCCUPIED", "AVAILABLE"])
def test_change_status_validation(room_type, make_unit, status):
    unit = make_unit(room_type, "106")

    with pytest.raises(DomainValidationError):
        RoomUnitAssignment().change_status(unit.id, status, actor="admin")


def test_change_status_refuses_occupied_unit(room_type, make_unit):
    unit = make_unit(room_type, "107", status=RoomUnit.Status.OCCUPIED)

    with pytest.raises(UnitUnavailable):
        RoomUnitAssignment().change_status(unit.id, RoomUnit.Status.MAINTENANCE, actor="admin")


def test_bulk_change_status_is_all_or_nothing(room_type, make_unit):
    free = make_unit(room_type, "108")
    busy = make_unit(room_type, "109", status=RoomUnit.Status.OCCUPIED)

    with pytest.raises(UnitUnavailable):
        RoomUnitAssignment().bulk_change_status([free.id, busy.id], RoomUnit.Status.MAINTENANCE, actor="admin")

    free.refresh_from_db()
    assert free.status == RoomUnit.Status.AVAILABLE
    assert not RoomUnitHistory.objects.exists()


def test_bulk_change_status_updates_every_unit(room_type, make_unit):
    units = [make_unit(room_type, number, status=RoomUnit.Status.DIRTY) for number in ("110", "111")]

    changed = RoomUnitAssignment().bulk_change_status([str(unit.id) for unit in units], "AVAILABLE", actor="admin")

    assert {unit.status for unit in changed} == {RoomUnit.Status.AVAILABLE}
    assert RoomUnit.objects.filter(status=RoomUnit.Status.AVAILABLE).count() == 2
    assert RoomUnitHistory.objects.count() == 2


def test_bulk_change_status_reports_missing_units(room_type, make_unit):
    unit = make_unit(room_type, "112")

    with pytest.raises(RoomUnitNotFound):
        RoomUnitAssignment().bulk_change_status([unit.id, uuid4()], RoomUnit.Status.MAINTENANCE, actor="admin")
