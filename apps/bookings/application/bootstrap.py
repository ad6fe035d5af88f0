"""
Message bus wiring for the booking lifecycle

Called once from BookingsConfig.ready(). Tests call it again with
replace=True to swap in a fixed clock or fake collaborators.
"""

import logging

from shared.application.message_bus import MessageBus, message_bus
from apps.bookings import event_handlers
from apps.bookings.application import command_handlers as handlers

logger = logging.getLogger(__name__)


def bootstrap(bus: MessageBus = message_bus, clock=None, replace: bool = False) -> MessageBus:
    """Register every lifecycle command handler and the audit event handlers"""
    command_handlers = {
        handlers.CreateBookingCommand: handlers.CreateBookingHandler(clock=clock),
        handlers.ConfirmBookingCommand: handlers.ConfirmBookingHandler(),
        handlers.CheckInBookingCommand: handlers.CheckInBookingHandler(clock=clock),
        handlers.AssignRoomUnitCommand: handlers.AssignRoomUnitHandler(),
        handlers.CheckOutBookingCommand: handlers.CheckOutBookingHandler(),
        handlers.CancelBookingCommand: handlers.CancelBookingHandler(clock=clock),
        handlers.ModifyBookingCommand: handlers.ModifyBookingHandler(clock=clock),
        handlers.CheckAvailabilityQuery: handlers.CheckAvailabilityHandler(),
    }
    for command_type, handler in command_handlers.items():
        if bus.has_command_handler(command_type) and not replace:
            continue
        bus.register_command_handler(command_type, handler.handle, replace=replace)

    for event_type, handler in event_handlers.HANDLERS:
        bus.register_event_handler(event_type, handler)

    logger.debug(f"Booking message bus wired with {len(command_handlers)} command handlers")
    return bus
