"""
Booking use cases

Entry points for callers outside the booking app (REST views, admin,
management commands). Each builds a command and dispatches it through
the message bus.
"""

from datetime import date
from uuid import UUID

from shared.application.message_bus import message_bus
from apps.bookings.application.command_handlers import (
    AssignRoomUnitCommand,
    CancelBookingCommand,
    CheckAvailabilityQuery,
    CheckInBookingCommand,
    CheckOutBookingCommand,
    ConfirmBookingCommand,
    CreateBookingCommand,
    ModifyBookingCommand,
)


def create_booking(
    guest_id: UUID,
    room_type_id: UUID,
    check_in: date,
    check_out: date,
    special_requests: str = '',
):
    return message_bus.handle_command(CreateBookingCommand(
        guest_id=guest_id,
        room_type_id=room_type_id,
        check_in=check_in,
        check_out=check_out,
        special_requests=special_requests,
    ))


def confirm_booking(booking_id: UUID):
    return message_bus.handle_command(ConfirmBookingCommand(booking_id=booking_id))


def check_in(booking_id: UUID, room_unit_id: UUID | None = None):
    return message_bus.handle_command(CheckInBookingCommand(booking_id=booking_id, room_unit_id=room_unit_id))


def assign_room_unit(booking_id: UUID, room_unit_id: UUID):
    return message_bus.handle_command(AssignRoomUnitCommand(booking_id=booking_id, room_unit_id=room_unit_id))


def check_out(booking_id: UUID):
    return message_bus.handle_command(CheckOutBookingCommand(booking_id=booking_id))


def cancel_booking(booking_id: UUID, reason: str = ''):
    return message_bus.handle_command(CancelBookingCommand(booking_id=booking_id, reason=reason))


def modify_booking(
    booking_id: UUID,
    check_in: date | None = None,
    check_out: date | None = None,
    room_type_id: UUID | None = None,
    special_requests: str | None = None,
):
    return message_bus.handle_command(ModifyBookingCommand(
        booking_id=booking_id,
        check_in=check_in,
        check_out=check_out,
        room_type_id=room_type_id,
        special_requests=special_requests,
    ))


def check_availability(room_type_id: UUID, check_in: date, check_out: date, quantity: int = 1):
    return message_bus.handle_command(CheckAvailabilityQuery(
        room_type_id=room_type_id,
        check_in=check_in,
        check_out=check_out,
        quantity=quantity,
    ))
