"""
Booking Domain Entities

Core business entities for the booking lifecycle:
- Booking: Main aggregate representing a reservation
- BookingStatus: FSM states for the booking lifecycle
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from shared.domain.base import Aggregate, utc_now
from shared.domain.exceptions import DomainValidationError
from shared.domain.value_objects import DateRange, Money

from .events import (
    BookingCancelled,
    BookingCheckedIn,
    BookingCheckedOut,
    BookingConfirmed,
    BookingCreated,
    BookingModified,
    BookingRoomAssigned,
)
from .exceptions import (
    CancellationClosed,
    CheckInNotOpen,
    InvalidTransition,
    PaymentRequired,
    RoomAlreadyAssigned,
)


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (payment succeeded)
    - PENDING -> CANCELLED
    - CONFIRMED -> CHECKED_IN (on or after the check-in date)
    - CONFIRMED -> CANCELLED (before the check-in date)
    - CHECKED_IN -> CHECKED_OUT

    CANCELLED and CHECKED_OUT are terminal.
    """
    PENDING = 'PENDING'          # Stock held, waiting for payment
    CONFIRMED = 'CONFIRMED'      # Paid
    CHECKED_IN = 'CHECKED_IN'    # Guest in the hotel
    CHECKED_OUT = 'CHECKED_OUT'  # Stay consumed
    CANCELLED = 'CANCELLED'      # Stock released


TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CHECKED_IN, BookingStatus.CANCELLED},
    BookingStatus.CHECKED_IN: {BookingStatus.CHECKED_OUT},
    BookingStatus.CHECKED_OUT: set(),
    BookingStatus.CANCELLED: set(),
}


def validate_stay(dates: DateRange, today: date, max_nights: int):
    """
    Guard for a requested stay

    Raises:
        DomainValidationError: check-in in the past or stay too long
    """
    if dates.start_date < today:
        raise DomainValidationError(
            "Check-in date cannot be in the past",
            check_in=dates.start_date,
        )
    if len(dates) > max_nights:
        raise DomainValidationError(
            f"Maximum stay is {max_nights} nights",
            nights=len(dates),
        )


@dataclass(kw_only=True, eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root

    Represents a guest's reservation of one room of a room type for
    specific nights. Stock for those nights is held from creation until
    cancellation; the aggregate itself never touches stock, the command
    handlers do so in the same unit of work as the status change.

    Key invariants:
    - dates is a valid half-open range (check_in < check_out)
    - status only moves along TRANSITIONS
    - room_unit_id is set only while CHECKED_IN or CHECKED_OUT
    """

    reference: str
    guest_id: UUID
    room_type_id: UUID
    dates: DateRange
    total_price: Money
    status: BookingStatus = BookingStatus.PENDING
    room_unit_id: UUID | None = None
    special_requests: str = ''
    cancellation_reason: str = ''

    # Timestamps
    confirmed_at: datetime | None = None
    checked_in_at: datetime | None = None
    checked_out_at: datetime | None = None
    cancelled_at: datetime | None = None

    @classmethod
    def create(
        cls,
        reference: str,
        guest_id: UUID,
        room_type_id: UUID,
        dates: DateRange,
        total_price: Money,
        special_requests: str = '',
    ) -> 'Booking':
        """New PENDING booking (the caller has already held its stock)"""
        booking = cls(
            reference=reference,
            guest_id=guest_id,
            room_type_id=room_type_id,
            dates=dates,
            total_price=total_price,
            special_requests=special_requests,
        )
        booking.add_event(BookingCreated(
            aggregate_id=booking.id,
            booking_id=booking.id,
            reference=reference,
            guest_id=guest_id,
            room_type_id=room_type_id,
            dates=dates,
            total_price=total_price,
        ))
        return booking

    def _transition(self, new_status: BookingStatus, action: str):
        if new_status not in TRANSITIONS[self.status]:
            raise InvalidTransition(
                f"Cannot {action} booking {self.reference} with status {self.status.value}",
                booking_id=self.id,
                status=self.status.value,
            )
        self.status = new_status
        self.touch()

    def confirm(self, payment_succeeded: bool):
        """
        Confirm booking (PENDING -> CONFIRMED)

        No stock change: it was held at creation.
        Events: BookingConfirmed
        """
        if self.status != BookingStatus.PENDING:
            raise InvalidTransition(
                f"Cannot confirm booking {self.reference} with status {self.status.value}. "
                f"Booking must be PENDING.",
                booking_id=self.id,
                status=self.status.value,
            )
        if not payment_succeeded:
            raise PaymentRequired(
                f"Booking {self.reference} has no successful payment",
                booking_id=self.id,
            )

        self._transition(BookingStatus.CONFIRMED, 'confirm')
        self.confirmed_at = utc_now()

        self.add_event(BookingConfirmed(
            aggregate_id=self.id,
            booking_id=self.id,
            reference=self.reference,
            guest_id=self.guest_id,
            dates=self.dates,
        ))

    def check_in(self, today: date, room_unit_id: UUID | None = None):
        """
        Check in guest (CONFIRMED -> CHECKED_IN)

        room_unit_id is optional; without it the room is assigned later.
        Events: BookingCheckedIn (+ BookingRoomAssigned)
        """
        if self.status != BookingStatus.CONFIRMED:
            raise InvalidTransition(
                f"Cannot check in booking {self.reference} with status {self.status.value}. "
                f"Booking must be CONFIRMED.",
                booking_id=self.id,
                status=self.status.value,
            )
        if today < self.check_in_date:
            raise CheckInNotOpen(
                f"Check-in for booking {self.reference} opens on {self.check_in_date.isoformat()}",
                booking_id=self.id,
                check_in=self.check_in_date,
            )

        self._transition(BookingStatus.CHECKED_IN, 'check in')
        self.checked_in_at = utc_now()

        self.add_event(BookingCheckedIn(
            aggregate_id=self.id,
            booking_id=self.id,
            reference=self.reference,
            room_unit_id=room_unit_id,
        ))
        if room_unit_id is not None:
            self.assign_room_unit(room_unit_id)

    def assign_room_unit(self, room_unit_id: UUID):
        """
        Stamp the physical room on a checked-in booking

        Events: BookingRoomAssigned
        """
        if self.status != BookingStatus.CHECKED_IN:
            raise InvalidTransition(
                f"Rooms are assigned to checked-in bookings only; "
                f"{self.reference} is {self.status.value}",
                booking_id=self.id,
                status=self.status.value,
            )
        if self.room_unit_id is not None:
            raise RoomAlreadyAssigned(
                f"Booking {self.reference} already has a room assigned",
                booking_id=self.id,
                room_unit_id=self.room_unit_id,
            )

        self.room_unit_id = room_unit_id
        self.touch()
        self.add_event(BookingRoomAssigned(
            aggregate_id=self.id,
            booking_id=self.id,
            reference=self.reference,
            room_unit_id=room_unit_id,
        ))

    def check_out(self):
        """
        Check out guest (CHECKED_IN -> CHECKED_OUT)

        The stay is consumed, stock is not credited back.
        Events: BookingCheckedOut
        """
        if self.status != BookingStatus.CHECKED_IN:
            raise InvalidTransition(
                f"Cannot check out booking {self.reference} with status {self.status.value}. "
                f"Booking must be CHECKED_IN.",
                booking_id=self.id,
                status=self.status.value,
            )

        self._transition(BookingStatus.CHECKED_OUT, 'check out')
        self.checked_out_at = utc_now()

        self.add_event(BookingCheckedOut(
            aggregate_id=self.id,
            booking_id=self.id,
            reference=self.reference,
            room_unit_id=self.room_unit_id,
        ))

    def cancel(self, today: date, reason: str = ''):
        """
        Cancel booking (PENDING | CONFIRMED -> CANCELLED)

        Closed from the check-in date onward. The caller releases the
        booked nights in the same unit of work.
        Events: BookingCancelled
        """
        if not self.can_be_cancelled():
            raise InvalidTransition(
                f"Cannot cancel booking {self.reference} with status {self.status.value}",
                booking_id=self.id,
                status=self.status.value,
            )
        if self.check_in_date <= today:
            raise CancellationClosed(
                "Cannot cancel booking after check-in has started",
                booking_id=self.id,
                check_in=self.check_in_date,
            )

        old_status = self.status
        self._transition(BookingStatus.CANCELLED, 'cancel')
        self.cancellation_reason = reason or ''
        self.cancelled_at = utc_now()

        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            reference=self.reference,
            room_type_id=self.room_type_id,
            dates=self.dates,
            reason=self.cancellation_reason,
            old_status=old_status.value,
        ))

    def ensure_modifiable(self):
        if self.status != BookingStatus.PENDING:
            raise InvalidTransition(
                f"Only pending bookings can be modified; {self.reference} is {self.status.value}",
                booking_id=self.id,
                status=self.status.value,
            )

    def reschedule(self, room_type_id: UUID, dates: DateRange, total_price: Money):
        """
        Move a pending booking to new nights and/or another room type

        The caller has already moved the held stock.
        Events: BookingModified
        """
        self.ensure_modifiable()

        old_room_type_id, old_dates, old_total = self.room_type_id, self.dates, self.total_price
        self.room_type_id = room_type_id
        self.dates = dates
        self.total_price = total_price
        self.touch()

        self.add_event(BookingModified(
            aggregate_id=self.id,
            booking_id=self.id,
            reference=self.reference,
            old_room_type_id=old_room_type_id,
            room_type_id=room_type_id,
            old_check_in=old_dates.start_date,
            old_check_out=old_dates.end_date,
            dates=dates,
            old_total_price=old_total,
            total_price=total_price,
        ))

    def update_special_requests(self, text: str):
        self.ensure_modifiable()
        self.special_requests = text or ''
        self.touch()

    def can_be_cancelled(self) -> bool:
        return BookingStatus.CANCELLED in TRANSITIONS[self.status]

    @property
    def check_in_date(self) -> date:
        return self.dates.start_date

    @property
    def check_out_date(self) -> date:
        return self.dates.end_date

    @property
    def nights(self) -> int:
        """Number of nights"""
        return len(self.dates)

    def __str__(self):
        return f"Booking {self.reference} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, reference={self.reference}, "
            f"status={self.status.value}, dates={self.dates})"
        )
