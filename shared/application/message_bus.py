"""
Message Bus

Routes lifecycle commands to their single handler and fans domain events
out to any number of subscribers. Callers (views, tasks, management
commands) only know the command classes, never the handlers behind them.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent
from shared.domain.exceptions import DomainError, InfrastructureError

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Any], Any]
EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    """
    Commands: exactly one handler per command type, errors propagate.
    Events: zero or more handlers per event type; they run after commit,
    so a failing subscriber is logged and the others still run.
    """

    def __init__(self):
        self._command_handlers: Dict[Type, CommandHandler] = {}
        self._event_handlers: Dict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

    def register_command_handler(self, command_type: Type, handler: CommandHandler, replace: bool = False):
        """
        Raises:
            InfrastructureError: a handler is already registered and replace is False
        """
        if command_type in self._command_handlers and not replace:
            raise InfrastructureError(
                f"{command_type.__name__} already has a handler; commands have exactly one"
            )
        self._command_handlers[command_type] = handler
        logger.debug(f"Command {command_type.__name__} -> {getattr(handler, '__qualname__', handler)}")

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        # Wiring twice (e.g. repeated app start-up) must not double the side effects
        if handler not in self._event_handlers[event_type]:
            self._event_handlers[event_type].append(handler)

    def has_command_handler(self, command_type: Type) -> bool:
        return command_type in self._command_handlers

    def handle_command(self, command: Any) -> Any:
        name = type(command).__name__
        handler = self._command_handlers.get(type(command))
        if handler is None:
            raise InfrastructureError(f"No handler registered for command {name}")

        logger.info(f"Handling command: {name}")
        try:
            return handler(command)
        except DomainError as e:
            logger.warning(f"Command {name} rejected: [{e.code}] {e}")
            raise
        except Exception as e:
            logger.error(f"Command {name} failed: {e}", exc_info=True)
            raise

    def publish_events(self, events: Iterable[DomainEvent]):
        for event in events:
            handlers = self._event_handlers.get(type(event), [])
            if not handlers:
                logger.debug(f"No subscribers for {event.event_type}")
                continue
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Event handler {getattr(handler, '__name__', handler)} failed "
                        f"for {event.event_type} ({event.event_id}): {e}",
                        exc_info=True,
                    )


# Process-wide bus, wired by apps.bookings at start-up
message_bus = MessageBus()
