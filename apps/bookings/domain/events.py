"""
Booking Domain Events

Events that represent things that have happened to a booking.
They are published after the transaction that produced them commits.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange, Money


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: A booking was created and its stock is held (-> PENDING)

    Triggers:
    - Audit log
    - Payment request to the guest (external)
    """
    booking_id: UUID
    reference: str
    guest_id: UUID
    room_type_id: UUID
    dates: DateRange
    total_price: Money


@dataclass(kw_only=True)
class BookingConfirmed(DomainEvent):
    """Event: Payment succeeded (PENDING -> CONFIRMED)"""
    booking_id: UUID
    reference: str
    guest_id: UUID
    dates: DateRange


@dataclass(kw_only=True)
class BookingCheckedIn(DomainEvent):
    """Event: Guest arrived (CONFIRMED -> CHECKED_IN)"""
    booking_id: UUID
    reference: str
    room_unit_id: UUID | None = None


@dataclass(kw_only=True)
class BookingRoomAssigned(DomainEvent):
    """
    Event: A physical room was handed out

    Either at check-in or later, for a guest who checked in before a
    clean room was ready.
    """
    booking_id: UUID
    reference: str
    room_unit_id: UUID


@dataclass(kw_only=True)
class BookingCheckedOut(DomainEvent):
    """
    Event: Guest left (CHECKED_IN -> CHECKED_OUT)

    Triggers:
    - Housekeeping for the released room (external)
    """
    booking_id: UUID
    reference: str
    room_unit_id: UUID | None = None


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled and its nights released

    Triggers:
    - Refund handling (external)
    """
    booking_id: UUID
    reference: str
    room_type_id: UUID
    dates: DateRange
    reason: str
    old_status: str  # Status before cancellation


@dataclass(kw_only=True)
class BookingModified(DomainEvent):
    """Event: Dates, room type or requests of a pending booking changed"""
    booking_id: UUID
    reference: str
    old_room_type_id: UUID
    room_type_id: UUID
    old_check_in: date
    old_check_out: date
    dates: DateRange
    old_total_price: Money
    total_price: Money
