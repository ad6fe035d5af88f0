"""
Booking Repository

Translates Booking rows into Booking aggregates and back, and answers the
two questions the lifecycle asks of external records: does the guest
exist, and has the booking been paid.
"""

from __future__ import annotations

import logging
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore

from apps.guests.models import GuestProfile
from apps.payments.models import Payment
from shared.domain.value_objects import DateRange, Money
from shared.infrastructure.db import lock_queryset_if_possible

from .domain.entities import Booking, BookingStatus
from .domain.exceptions import BookingNotFound, GuestNotFound, ReferenceCollision
from .models import Booking as BookingModel

logger = logging.getLogger(__name__)


class DjangoBookingRepository:
    """Django ORM persistence for Booking aggregates"""

    def get_by_id(self, booking_id: UUID, lock: bool = True) -> Booking:
        """
        Load a booking, locking its row when lock=True

        Raises:
            BookingNotFound
        """
        try:
            queryset = BookingModel.objects.filter(pk=booking_id)
            if lock:
                queryset = lock_queryset_if_possible(queryset)
            row = queryset.first()
        except DjangoValidationError:
            row = None
        if row is None:
            raise BookingNotFound(f"Booking {booking_id} not found", booking_id=booking_id)
        return self._to_domain(row)

    def reference_exists(self, reference: str) -> bool:
        return BookingModel.objects.filter(reference=reference).exists()

    def add(self, booking: Booking) -> BookingModel:
        """
        Insert a new booking

        Raises:
            ReferenceCollision: another transaction took the reference first
        """
        try:
            with transaction.atomic():
                row = BookingModel.objects.create(
                    id=booking.id,
                    reference=booking.reference,
                    **self._fields(booking),
                )
        except IntegrityError as exc:
            if BookingModel.objects.filter(reference=booking.reference).exists():
                raise ReferenceCollision(
                    f"Booking reference {booking.reference} is already in use",
                    reference=booking.reference,
                ) from exc
            raise
        logger.debug(f"Inserted booking {booking.reference}")
        return row

    def save(self, booking: Booking) -> int:
        """Write back the mutable fields of an existing booking"""
        updated = BookingModel.objects.filter(pk=booking.id).update(**self._fields(booking))
        if not updated:
            raise BookingNotFound(f"Booking {booking.id} not found", booking_id=booking.id)
        return updated

    @staticmethod
    def _fields(booking: Booking) -> dict:
        return {
            "guest_id": booking.guest_id,
            "room_type_id": booking.room_type_id,
            "room_unit_id": booking.room_unit_id,
            "check_in": booking.dates.start_date,
            "check_out": booking.dates.end_date,
            "total_price": booking.total_price.quantized().amount,
            "currency": booking.total_price.currency,
            "status": booking.status.value,
            "special_requests": booking.special_requests,
            "cancellation_reason": booking.cancellation_reason,
            "confirmed_at": booking.confirmed_at,
            "checked_in_at": booking.checked_in_at,
            "checked_out_at": booking.checked_out_at,
            "cancelled_at": booking.cancelled_at,
            "updated_at": booking.updated_at,
        }

    @staticmethod
    def _to_domain(row: BookingModel) -> Booking:
        return Booking(
            id=row.id,
            reference=row.reference,
            guest_id=row.guest_id,
            room_type_id=row.room_type_id,
            room_unit_id=row.room_unit_id,
            dates=DateRange(row.check_in, row.check_out),
            total_price=Money(row.total_price, row.currency),
            status=BookingStatus(row.status),
            special_requests=row.special_requests,
            cancellation_reason=row.cancellation_reason,
            confirmed_at=row.confirmed_at,
            checked_in_at=row.checked_in_at,
            checked_out_at=row.checked_out_at,
            cancelled_at=row.cancelled_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class GuestDirectory:
    """Read-only view of guest records"""

    def ensure_exists(self, guest_id: UUID):
        try:
            found = GuestProfile.objects.filter(pk=guest_id).exists()
        except DjangoValidationError:
            found = False
        if not found:
            raise GuestNotFound(f"Guest {guest_id} not found", guest_id=guest_id)


class PaymentLedger:
    """Read-only view of payment records"""

    def has_successful_payment(self, booking_id: UUID) -> bool:
        return Payment.objects.filter(booking_id=booking_id, status=Payment.Status.SUCCESS).exists()
