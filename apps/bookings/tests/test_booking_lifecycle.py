"""
Lifecycle tests for the booking command handlers.

Handlers are built directly with a fixed clock so "today" never drifts.
Every test checks the stock rows alongside the booking, since the two
must always change together.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from unittest import mock
from uuid import uuid4

import pytest

from apps.bookings import event_handlers
from apps.bookings.application.command_handlers import (
    AssignRoomUnitCommand,
    AssignRoomUnitHandler,
    CancelBookingCommand,
    CancelBookingHandler,
    CheckAvailabilityHandler,
    CheckAvailabilityQuery,
    CheckInBookingCommand,
    CheckInBookingHandler,
    CheckOutBookingCommand,
    CheckOutBookingHandler,
    ConfirmBookingCommand,
    ConfirmBookingHandler,
    CreateBookingCommand,
    CreateBookingHandler,
    ModifyBookingCommand,
    ModifyBookingHandler,
)
from apps.bookings.domain.entities import BookingStatus
from apps.bookings.domain.exceptions import (
    BookingNotFound,
    CancellationClosed,
    CheckInNotOpen,
    GuestNotFound,
    InvalidTransition,
    PaymentRequired,
    ReferenceCollision,
)
from apps.bookings.models import Booking as BookingModel
from apps.bookings.repositories import DjangoBookingRepository
from apps.inventory.domain import InsufficientStock, MissingInventory
from apps.payments.models import Payment
from apps.rooms.exceptions import RoomTypeMismatch, RoomTypeNotFound, UnitUnavailable
from apps.rooms.models import RoomUnit
from shared.domain.exceptions import ConflictError, DomainValidationError

pytestmark = pytest.mark.django_db

TODAY = date(2024, 6, 1)
HORIZON = 15


def clock():
    return TODAY


def on(day: date):
    return lambda: day


@pytest.fixture
def hotel(room_type, other_room_type, stock):
    stock(room_type, TODAY, HORIZON, total=2)
    stock(other_room_type, TODAY, HORIZON, total=1)


def create(room_type, guest, offset=2, nights=3, handler=None, **extra):
    handler = handler or CreateBookingHandler(clock=clock)
    check_in = TODAY + timedelta(days=offset)
    return handler.handle(CreateBookingCommand(
        guest_id=guest.id,
        room_type_id=room_type.id,
        check_in=check_in,
        check_out=check_in + timedelta(days=nights),
        **extra,
    ))


def pay(booking, status=Payment.Status.SUCCESS):
    return Payment.objects.create(booking_id=booking.id, amount=booking.total_price.amount, status=status)


def confirm(booking):
    pay(booking)
    return ConfirmBookingHandler().handle(ConfirmBookingCommand(booking_id=booking.id))


def row(booking):
    return BookingModel.objects.get(pk=booking.id)


# ===== create =====


def test_create_holds_every_night_and_prices_stay(hotel, room_type, guest, counts):
    booking = create(room_type, guest, offset=2, nights=3, special_requests="High floor")

    stored = row(booking)
    assert stored.status == BookingModel.Status.PENDING
    assert stored.total_price == Decimal("300.00")
    assert stored.special_requests == "High floor"
    assert stored.reference.startswith("BK-20240601-")
    assert counts(room_type, TODAY, 6) == [2, 2, 1, 1, 1, 2]


def test_create_fails_when_last_room_is_taken(hotel, room_type, guest, counts):
    create(room_type, guest)
    create(room_type, guest)

    with pytest.raises(InsufficientStock):
        create(room_type, guest, offset=3, nights=1)

    assert BookingModel.objects.count() == 2
    assert counts(room_type, TODAY + timedelta(days=2), 3) == [0, 0, 0]


def test_create_beyond_stocked_horizon(hotel, room_type, guest, counts):
    with pytest.raises(MissingInventory):
        create(room_type, guest, offset=HORIZON - 1, nights=2)

    assert not BookingModel.objects.exists()
    assert counts(room_type, TODAY + timedelta(days=HORIZON - 1), 1) == [2]


@pytest.mark.parametrize("offset,nights", [(-1, 2), (0, 11)])
def test_create_rejects_invalid_stay_before_touching_stock(hotel, room_type, guest, counts, offset, nights):
    with pytest.raises(DomainValidationError):
        create(room_type, guest, offset=offset, nights=nights)

    assert set(counts(room_type, TODAY, HORIZON)) == {2}


def test_create_rejects_inverted_dates(hotel, room_type, guest):
    with pytest.raises(DomainValidationError):
        CreateBookingHandler(clock=clock).handle(CreateBookingCommand(
            guest_id=guest.id,
            room_type_id=room_type.id,
            check_in=TODAY + timedelta(days=3),
            check_out=TODAY + timedelta(days=3),
        ))


def test_create_for_unknown_guest(hotel, room_type, counts):
    with pytest.raises(GuestNotFound):
        CreateBookingHandler(clock=clock).handle(CreateBookingCommand(
            guest_id=uuid4(),
            room_type_id=room_type.id,
            check_in=TODAY + timedelta(days=1),
            check_out=TODAY + timedelta(days=2),
        ))

    assert set(counts(room_type, TODAY, HORIZON)) == {2}


def test_create_for_deleted_room_type(hotel, room_type, guest):
    room_type.soft_delete()

    with pytest.raises(RoomTypeNotFound):
        create(room_type, guest)


def test_reference_collision_rolls_back_held_stock(hotel, room_type, guest, counts):
    class TakenReferences(DjangoBookingRepository):
        def reference_exists(self, reference):
            return True

    handler = CreateBookingHandler(booking_repo=TakenReferences(), clock=clock)

    with pytest.raises(ReferenceCollision):
        create(room_type, guest, handler=handler)

    assert not BookingModel.objects.exists()
    assert set(counts(room_type, TODAY, HORIZON)) == {2}


# ===== confirm =====


def test_confirm_without_payment(hotel, room_type, guest):
    booking = create(room_type, guest)

    with pytest.raises(PaymentRequired):
        ConfirmBookingHandler().handle(ConfirmBookingCommand(booking_id=booking.id))

    assert row(booking).status == BookingModel.Status.PENDING


def test_confirm_with_failed_payment(hotel, room_type, guest):
    booking = create(room_type, guest)
    pay(booking, status=Payment.Status.FAILED)

    with pytest.raises(PaymentRequired):
        ConfirmBookingHandler().handle(ConfirmBookingCommand(booking_id=booking.id))


def test_confirm_paid_booking_keeps_stock(hotel, room_type, guest, counts):
    booking = create(room_type, guest)
    before = counts(room_type, TODAY, HORIZON)

    confirmed = confirm(booking)

    assert confirmed.status == BookingStatus.CONFIRMED
    stored = row(booking)
    assert stored.status == BookingModel.Status.CONFIRMED
    assert stored.confirmed_at is not None
    assert counts(room_type, TODAY, HORIZON) == before


def test_unknown_booking(db):
    handler = ConfirmBookingHandler()

    with pytest.raises(BookingNotFound):
        handler.handle(ConfirmBookingCommand(booking_id=uuid4()))
    with pytest.raises(BookingNotFound):
        handler.handle(ConfirmBookingCommand(booking_id="not-a-uuid"))


# ===== check-in / check-out =====


def test_check_in_before_arrival_is_refused(hotel, room_type, guest):
    booking = confirm(create(room_type, guest, offset=2))

    with pytest.raises(CheckInNotOpen):
        CheckInBookingHandler(clock=on(TODAY + timedelta(days=1))).handle(
            CheckInBookingCommand(booking_id=booking.id)
        )

    assert row(booking).status == BookingModel.Status.CONFIRMED


def test_pending_booking_cannot_check_in(hotel, room_type, guest):
    booking = create(room_type, guest, offset=0)

    with pytest.raises(InvalidTransition):
        CheckInBookingHandler(clock=clock).handle(CheckInBookingCommand(booking_id=booking.id))


def test_check_in_with_unit(hotel, room_type, guest, make_unit):
    unit = make_unit(room_type, "101")
    booking = confirm(create(room_type, guest, offset=0))

    CheckInBookingHandler(clock=clock).handle(CheckInBookingCommand(booking_id=booking.id, room_unit_id=unit.id))

    stored = row(booking)
    assert stored.status == BookingModel.Status.CHECKED_IN
    assert stored.room_unit_id == unit.id
    unit.refresh_from_db()
    assert unit.status == RoomUnit.Status.OCCUPIED


def test_check_in_with_unit_of_other_type_changes_nothing(hotel, room_type, other_room_type, guest, make_unit):
    unit = make_unit(other_room_type, "201")
    booking = confirm(create(room_type, guest, offset=0))

    with pytest.raises(RoomTypeMismatch):
        CheckInBookingHandler(clock=clock).handle(
            CheckInBookingCommand(booking_id=booking.id, room_unit_id=unit.id)
        )

    stored = row(booking)
    assert stored.status == BookingModel.Status.CONFIRMED
    assert stored.room_unit_id is None
    unit.refresh_from_db()
    assert unit.status == RoomUnit.Status.AVAILABLE


def test_check_in_with_dirty_unit(hotel, room_type, guest, make_unit):
    unit = make_unit(room_type, "102", status=RoomUnit.Status.DIRTY)
    booking = confirm(create(room_type, guest, offset=0))

    with pytest.raises(UnitUnavailable):
        CheckInBookingHandler(clock=clock).handle(
            CheckInBookingCommand(booking_id=booking.id, room_unit_id=unit.id)
        )

    assert row(booking).status == BookingModel.Status.CONFIRMED


def test_assign_unit_after_check_in(hotel, room_type, guest, make_unit):
    unit = make_unit(room_type, "103")
    booking = confirm(create(room_type, guest, offset=0))
    CheckInBookingHandler(clock=clock).handle(CheckInBookingCommand(booking_id=booking.id))
    assert row(booking).room_unit_id is None

    AssignRoomUnitHandler().handle(AssignRoomUnitCommand(booking_id=booking.id, room_unit_id=unit.id))

    assert row(booking).room_unit_id == unit.id
    unit.refresh_from_db()
    assert unit.status == RoomUnit.Status.OCCUPIED


def test_check_out_frees_unit_for_housekeeping_without_touching_stock(hotel, room_type, guest, make_unit, counts):
    unit = make_unit(room_type, "104")
    booking = confirm(create(room_type, guest, offset=0, nights=2))
    CheckInBookingHandler(clock=clock).handle(CheckInBookingCommand(booking_id=booking.id, room_unit_id=unit.id))
    before = counts(room_type, TODAY, HORIZON)

    CheckOutBookingHandler().handle(CheckOutBookingCommand(booking_id=booking.id))

    stored = row(booking)
    assert stored.status == BookingModel.Status.CHECKED_OUT
    assert stored.checked_out_at is not None
    unit.refresh_from_db()
    assert unit.status == RoomUnit.Status.DIRTY
    assert counts(room_type, TODAY, HORIZON) == before


def test_check_out_requires_check_in(hotel, room_type, guest):
    booking = confirm(create(room_type, guest))

    with pytest.raises(InvalidTransition):
        CheckOutBookingHandler().handle(CheckOutBookingCommand(booking_id=booking.id))


# ===== cancel =====


@pytest.mark.parametrize("paid", [False, True])
def test_cancel_before_arrival_gives_back_exactly_the_booked_nights(hotel, room_type, guest, counts, paid):
    create(room_type, guest, offset=1, nights=5)
    booking = create(room_type, guest, offset=3, nights=2)
    if paid:
        confirm(booking)

    CancelBookingHandler(clock=clock).handle(CancelBookingCommand(booking_id=booking.id, reason="Plans changed"))

    stored = row(booking)
    assert stored.status == BookingModel.Status.CANCELLED
    assert stored.cancellation_reason == "Plans changed"
    assert counts(room_type, TODAY, 7) == [2, 1, 1, 1, 1, 1, 2]


def test_cancel_on_check_in_day_is_refused(hotel, room_type, guest, counts):
    booking = confirm(create(room_type, guest, offset=2))
    before = counts(room_type, TODAY, HORIZON)

    with pytest.raises(CancellationClosed):
        CancelBookingHandler(clock=on(TODAY + timedelta(days=2))).handle(
            CancelBookingCommand(booking_id=booking.id)
        )

    assert row(booking).status == BookingModel.Status.CONFIRMED
    assert counts(room_type, TODAY, HORIZON) == before


def test_second_cancel_does_not_release_twice(hotel, room_type, guest, counts):
    other = create(room_type, guest)
    booking = create(room_type, guest)
    handler = CancelBookingHandler(clock=clock)
    handler.handle(CancelBookingCommand(booking_id=booking.id))

    with pytest.raises(InvalidTransition):
        handler.handle(CancelBookingCommand(booking_id=booking.id))

    assert row(other).status == BookingModel.Status.PENDING
    assert counts(room_type, TODAY + timedelta(days=2), 3) == [1, 1, 1]


# ===== modify =====


def test_modify_dates_moves_stock_and_reprices(hotel, room_type, guest, counts):
    booking = create(room_type, guest, offset=2, nights=2)

    modified = ModifyBookingHandler(clock=clock).handle(ModifyBookingCommand(
        booking_id=booking.id,
        check_in=TODAY + timedelta(days=3),
        check_out=TODAY + timedelta(days=6),
    ))

    assert modified.total_price.amount == Decimal("300.00")
    stored = row(booking)
    assert (stored.check_in, stored.check_out) == (TODAY + timedelta(days=3), TODAY + timedelta(days=6))
    assert stored.total_price == Decimal("300.00")
    assert counts(room_type, TODAY, 7) == [2, 2, 2, 1, 1, 1, 2]


def test_modify_room_type(hotel, room_type, other_room_type, guest, counts):
    booking = create(room_type, guest, offset=2, nights=2)

    ModifyBookingHandler(clock=clock).handle(
        ModifyBookingCommand(booking_id=booking.id, room_type_id=other_room_type.id)
    )

    stored = row(booking)
    assert stored.room_type_id == other_room_type.id
    assert stored.total_price == Decimal("160.00")
    assert counts(room_type, TODAY + timedelta(days=2), 2) == [2, 2]
    assert counts(other_room_type, TODAY + timedelta(days=2), 2) == [0, 0]


def test_modify_without_stock_leaves_booking_and_stock_unchanged(hotel, room_type, other_room_type, guest, counts):
    create(other_room_type, guest, offset=4, nights=1)
    booking = create(room_type, guest, offset=2, nights=3)
    before = (counts(room_type, TODAY, HORIZON), counts(other_room_type, TODAY, HORIZON))

    with pytest.raises(ConflictError):
        ModifyBookingHandler(clock=clock).handle(
            ModifyBookingCommand(booking_id=booking.id, room_type_id=other_room_type.id)
        )

    stored = row(booking)
    assert stored.room_type_id == room_type.id
    assert stored.total_price == Decimal("300.00")
    assert (counts(room_type, TODAY, HORIZON), counts(other_room_type, TODAY, HORIZON)) == before


def test_modify_special_requests_only(hotel, room_type, guest, counts):
    booking = create(room_type, guest)
    before = counts(room_type, TODAY, HORIZON)

    ModifyBookingHandler(clock=clock).handle(
        ModifyBookingCommand(booking_id=booking.id, special_requests="Crib please")
    )

    assert row(booking).special_requests == "Crib please"
    assert counts(room_type, TODAY, HORIZON) == before


def test_confirmed_booking_cannot_be_modified(hotel, room_type, guest):
    booking = confirm(create(room_type, guest))

    with pytest.raises(InvalidTransition):
        ModifyBookingHandler(clock=clock).handle(
            ModifyBookingCommand(booking_id=booking.id, special_requests="Late arrival")
        )


# ===== availability and events =====


def test_availability_reflects_bookings(hotel, room_type, guest):
    create(room_type, guest, offset=2, nights=2)
    query = CheckAvailabilityQuery(
        room_type_id=room_type.id,
        check_in=(TODAY + timedelta(days=1)).isoformat(),
        check_out=(TODAY + timedelta(days=4)).isoformat(),
    )

    result = CheckAvailabilityHandler(clock=clock).handle(query)

    assert result.available is True
    assert result.min_rooms_available == 1


def test_availability_refuses_past_check_in(hotel, room_type):
    query = CheckAvailabilityQuery(
        room_type_id=room_type.id,
        check_in=TODAY.isoformat(),
        check_out=(TODAY + timedelta(days=2)).isoformat(),
    )

    with pytest.raises(DomainValidationError, match="in the past"):
        CheckAvailabilityHandler(clock=on(TODAY + timedelta(days=1))).handle(query)


def test_events_are_audited_after_commit(hotel, room_type, guest, monkeypatch, django_capture_on_commit_callbacks):
    audit = mock.Mock()
    monkeypatch.setattr(event_handlers, "logger", audit)

    with django_capture_on_commit_callbacks(execute=True):
        booking = create(room_type, guest)

    audit.info.assert_called_once()
    payload = audit.info.call_args.kwargs["extra"]["audit"]
    assert payload["event_type"] == "BookingCreated"
    assert payload["reference"] == booking.reference


def test_failed_create_publishes_nothing(hotel, room_type, guest, monkeypatch, django_capture_on_commit_callbacks):
    audit = mock.Mock()
    monkeypatch.setattr(event_handlers, "logger", audit)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(MissingInventory):
            create(room_type, guest, offset=HORIZON, nights=1)

    assert callbacks == []
    audit.info.assert_not_called()
