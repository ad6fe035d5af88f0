"""
Audit log for the booking lifecycle

Runs after commit; a failure here is logged by the message bus and never
reaches the transaction that produced the event.
"""

import logging

from apps.bookings.domain import events
from apps.inventory.domain import InventoryReleased

logger = logging.getLogger("apps.bookings.audit")


def log_booking_event(event):
    payload = event.to_dict()
    payload["reference"] = getattr(event, "reference", None)
    logger.info(f"{payload['event_type']} {payload['reference']}", extra={"audit": payload})


def log_clamped_release(event: InventoryReleased):
    if event.clamped_dates:
        logger.warning(
            f"Release for room type {event.room_type_id} was capped at total stock on "
            f"{', '.join(d.isoformat() for d in event.clamped_dates)}"
        )


HANDLERS = [
    (events.BookingCreated, log_booking_event),
    (events.BookingConfirmed, log_booking_event),
    (events.BookingCheckedIn, log_booking_event),
    (events.BookingRoomAssigned, log_booking_event),
    (events.BookingCheckedOut, log_booking_event),
    (events.BookingCancelled, log_booking_event),
    (events.BookingModified, log_booking_event),
    (InventoryReleased, log_clamped_release),
]
