"""Errors raised by the booking lifecycle."""

from shared.domain.exceptions import ConflictError, InvalidStateError, NotFoundError


class BookingNotFound(NotFoundError):
    code = 'booking_not_found'


class GuestNotFound(NotFoundError):
    code = 'guest_not_found'


class InvalidTransition(InvalidStateError):
    """The booking's current status does not allow the requested transition"""
    code = 'invalid_transition'


class PaymentRequired(InvalidStateError):
    code = 'payment_required'


class CheckInNotOpen(InvalidStateError):
    code = 'check_in_not_open'


class CancellationClosed(InvalidStateError):
    code = 'cancellation_closed'


class RoomAlreadyAssigned(InvalidStateError):
    code = 'room_already_assigned'


class ReferenceCollision(ConflictError):
    code = 'duplicate_reference'
