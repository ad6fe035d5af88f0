"""
Booking Command Handlers

These are the use cases for the booking lifecycle.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Price, hold stock and create a booking
- ConfirmBookingCommand: Confirm a paid booking
- CheckInBookingCommand: Check in a guest, optionally handing out a room
- AssignRoomUnitCommand: Hand out a room to a checked-in guest
- CheckOutBookingCommand: Check out a guest
- CancelBookingCommand: Cancel a booking and release its nights
- ModifyBookingCommand: Change dates, room type or requests of a pending booking

Queries:
- CheckAvailabilityQuery: Advisory availability for a stay

Every handler runs inside exactly one DjangoUnitOfWork and loads the
booking row with SELECT FOR UPDATE before changing it.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable
from uuid import UUID
import logging

from django.conf import settings
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import DomainValidationError
from apps.bookings.domain.entities import Booking, validate_stay
from apps.bookings.references import generate_booking_reference
from apps.bookings.repositories import DjangoBookingRepository, GuestDirectory, PaymentLedger
from apps.inventory.services import Availability, InventoryLedger, coerce_range
from apps.pricing.services import RateResolver
from apps.rooms.services import RoomUnitAssignment

logger = logging.getLogger(__name__)

Clock = Callable[[], date]


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    This is the primary entry point for creating bookings.
    """
    guest_id: UUID
    room_type_id: UUID
    check_in: date
    check_out: date
    special_requests: str = ''


@dataclass
class ConfirmBookingCommand:
    """Command to confirm a booking whose payment succeeded"""
    booking_id: UUID


@dataclass
class CheckInBookingCommand:
    """Command to check in a guest"""
    booking_id: UUID
    room_unit_id: UUID | None = None


@dataclass
class AssignRoomUnitCommand:
    """Command to hand out a room after check-in"""
    booking_id: UUID
    room_unit_id: UUID


@dataclass
class CheckOutBookingCommand:
    """Command to check out a guest"""
    booking_id: UUID


@dataclass
class CancelBookingCommand:
    """Command to cancel a booking"""
    booking_id: UUID
    reason: str = ''


@dataclass
class ModifyBookingCommand:
    """Command to change a pending booking; None leaves a field as it is"""
    booking_id: UUID
    check_in: date | None = None
    check_out: date | None = None
    room_type_id: UUID | None = None
    special_requests: str | None = None


@dataclass
class CheckAvailabilityQuery:
    room_type_id: UUID
    check_in: date
    check_out: date
    quantity: int = 1


# ===== Command Handlers =====

class _BookingHandler:
    """Shared collaborators of the lifecycle handlers"""

    def __init__(
        self,
        booking_repo: DjangoBookingRepository | None = None,
        inventory: InventoryLedger | None = None,
        clock: Clock | None = None,
    ):
        self.booking_repo = booking_repo or DjangoBookingRepository()
        self.inventory = inventory or InventoryLedger()
        self.clock = clock or timezone.localdate

    def today(self) -> date:
        return self.clock()


class CreateBookingHandler(_BookingHandler):
    """
    Handler for CreateBooking command

    This implements the critical business logic for creating bookings
    without overselling.

    Strategy:
    1. Validate the stay before touching storage
    2. Check the guest exists and price the stay (plain reads)
    3. Start database transaction (atomic)
    4. Hold one room for every night (rows locked in (room type, date) order)
    5. Generate a unique reference
    6. Insert the booking row
    7. Commit transaction, then publish events

    If any step fails the transaction rolls back and no stock is held.
    """

    def __init__(
        self,
        booking_repo: DjangoBookingRepository | None = None,
        inventory: InventoryLedger | None = None,
        clock: Clock | None = None,
        rates: RateResolver | None = None,
        guests: GuestDirectory | None = None,
    ):
        super().__init__(booking_repo, inventory, clock)
        self.rates = rates or RateResolver()
        self.guests = guests or GuestDirectory()

    def handle(self, command: CreateBookingCommand) -> Booking:
        """
        Handle booking creation

        Returns: Created Booking aggregate

        Raises:
            DomainValidationError: bad dates or stay too long
            GuestNotFound / RoomTypeNotFound
            MissingInventory / InsufficientStock / StaleInventory
            ReferenceCollision
        """
        today = self.today()
        dates = coerce_range(command.check_in, command.check_out)
        validate_stay(dates, today, settings.BOOKING_MAX_NIGHTS)

        logger.info(
            f"Creating booking for room type {command.room_type_id}, "
            f"guest {command.guest_id}, dates {dates}"
        )

        self.guests.ensure_exists(command.guest_id)
        quote = self.rates.price_range(command.room_type_id, dates)

        with DjangoUnitOfWork() as uow:
            ledger = self.inventory.reserve_range(command.room_type_id, dates, quantity=1)

            reference = generate_booking_reference(
                self.booking_repo.reference_exists,
                today=today,
                max_attempts=settings.BOOKING_REFERENCE_MAX_ATTEMPTS,
            )
            booking = Booking.create(
                reference=reference,
                guest_id=command.guest_id,
                room_type_id=command.room_type_id,
                dates=dates,
                total_price=quote.total,
                special_requests=command.special_requests or '',
            )

            uow.collect_events(ledger)
            uow.collect_events(booking)
            self.booking_repo.add(booking)
            # Transaction commits here automatically (__exit__)

        logger.info(
            f"Booking created successfully: {booking.reference} "
            f"(ID: {booking.id}, total {booking.total_price})"
        )
        return booking


class ConfirmBookingHandler(_BookingHandler):
    """Handler for confirming a paid booking"""

    def __init__(
        self,
        booking_repo: DjangoBookingRepository | None = None,
        payments: PaymentLedger | None = None,
    ):
        super().__init__(booking_repo)
        self.payments = payments or PaymentLedger()

    def handle(self, command: ConfirmBookingCommand) -> Booking:
        logger.info(f"Confirming booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get_by_id(command.booking_id, lock=True)

            # FSM transition PENDING -> CONFIRMED, gated on the payment record
            booking.confirm(payment_succeeded=self.payments.has_successful_payment(booking.id))

            uow.collect_events(booking)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.reference} confirmed successfully")
        return booking


class CheckInBookingHandler(_BookingHandler):
    """Handler for checking in a guest"""

    def __init__(
        self,
        booking_repo: DjangoBookingRepository | None = None,
        clock: Clock | None = None,
        rooms: RoomUnitAssignment | None = None,
    ):
        super().__init__(booking_repo, clock=clock)
        self.rooms = rooms or RoomUnitAssignment()

    def handle(self, command: CheckInBookingCommand) -> Booking:
        logger.info(f"Checking in booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get_by_id(command.booking_id, lock=True)

            # FSM transition CONFIRMED -> CHECKED_IN
            booking.check_in(self.today(), room_unit_id=command.room_unit_id)
            if command.room_unit_id is not None:
                self.rooms.assign(booking, command.room_unit_id)

            uow.collect_events(booking)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.reference} checked in successfully")
        return booking


class AssignRoomUnitHandler(_BookingHandler):
    """Handler for handing out a room after a check-in without one"""

    def __init__(
        self,
        booking_repo: DjangoBookingRepository | None = None,
        rooms: RoomUnitAssignment | None = None,
    ):
        super().__init__(booking_repo)
        self.rooms = rooms or RoomUnitAssignment()

    def handle(self, command: AssignRoomUnitCommand) -> Booking:
        logger.info(f"Assigning room unit {command.room_unit_id} to booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get_by_id(command.booking_id, lock=True)

            booking.assign_room_unit(command.room_unit_id)
            self.rooms.assign(booking, command.room_unit_id)

            uow.collect_events(booking)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.reference} assigned room unit {command.room_unit_id}")
        return booking


class CheckOutBookingHandler(_BookingHandler):
    """Handler for checking out a guest; stock is not credited back"""

    def __init__(
        self,
        booking_repo: DjangoBookingRepository | None = None,
        rooms: RoomUnitAssignment | None = None,
    ):
        super().__init__(booking_repo)
        self.rooms = rooms or RoomUnitAssignment()

    def handle(self, command: CheckOutBookingCommand) -> Booking:
        logger.info(f"Checking out booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get_by_id(command.booking_id, lock=True)

            # FSM transition CHECKED_IN -> CHECKED_OUT
            booking.check_out()
            if booking.room_unit_id is not None:
                self.rooms.release(
                    booking.room_unit_id,
                    reason=f"Guest checked out of booking {booking.reference}",
                )

            uow.collect_events(booking)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.reference} checked out successfully")
        return booking


class CancelBookingHandler(_BookingHandler):
    """Handler for cancelling a booking and releasing its nights"""

    def handle(self, command: CancelBookingCommand) -> Booking:
        logger.info(f"Cancelling booking {command.booking_id}, reason: {command.reason}")

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get_by_id(command.booking_id, lock=True)

            # FSM transition PENDING | CONFIRMED -> CANCELLED
            booking.cancel(self.today(), command.reason)

            # Release exactly the booked nights; a failed release fails the cancellation
            ledger = self.inventory.release_range(booking.room_type_id, booking.dates, quantity=1)

            uow.collect_events(booking)
            uow.collect_events(ledger)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.reference} cancelled successfully")
        return booking


class ModifyBookingHandler(_BookingHandler):
    """
    Handler for modifying a pending booking

    A change of dates or room type moves the held stock (release old,
    reserve new) over one locked row set and re-prices the stay. If the
    new nights cannot be held the whole unit of work rolls back, so the
    booking keeps its dates, price and stock.
    """

    def __init__(
        self,
        booking_repo: DjangoBookingRepository | None = None,
        inventory: InventoryLedger | None = None,
        clock: Clock | None = None,
        rates: RateResolver | None = None,
    ):
        super().__init__(booking_repo, inventory, clock)
        self.rates = rates or RateResolver()

    def handle(self, command: ModifyBookingCommand) -> Booking:
        logger.info(f"Modifying booking {command.booking_id}")
        today = self.today()

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get_by_id(command.booking_id, lock=True)
            booking.ensure_modifiable()

            room_type_id = command.room_type_id or booking.room_type_id
            dates = coerce_range(
                command.check_in or booking.check_in_date,
                command.check_out or booking.check_out_date,
            )

            if dates != booking.dates or room_type_id != booking.room_type_id:
                validate_stay(dates, today, settings.BOOKING_MAX_NIGHTS)
                quote = self.rates.price_range(room_type_id, dates)
                released, reserved = self.inventory.move_range(
                    booking.room_type_id,
                    booking.dates,
                    room_type_id,
                    dates,
                    quantity=1,
                )
                booking.reschedule(room_type_id, dates, quote.total)
                uow.collect_events(released)
                uow.collect_events(reserved)

            if command.special_requests is not None:
                booking.update_special_requests(command.special_requests)

            uow.collect_events(booking)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.reference} modified successfully")
        return booking


class CheckAvailabilityHandler:
    """Read-only query; takes no locks and holds nothing"""

    def __init__(self, inventory: InventoryLedger | None = None, clock: Clock | None = None):
        self.inventory = inventory or InventoryLedger()
        self.clock = clock or timezone.localdate

    def handle(self, query: CheckAvailabilityQuery) -> Availability:
        """
        Raises:
            DomainValidationError: bad dates or check-in in the past
            RoomTypeNotFound
        """
        dates = coerce_range(query.check_in, query.check_out)
        if dates.start_date < self.clock():
            raise DomainValidationError("Check-in date cannot be in the past", check_in=dates.start_date)
        return self.inventory.check_availability(query.room_type_id, dates, quantity=query.quantity)
