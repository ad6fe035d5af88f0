"""
Unit of Work

One database transaction per use case. Aggregates touched inside it hand
their events over with collect_events(); the events reach the message bus
only if, and after, the transaction commits.
"""

from typing import List
import logging

from django.db import DatabaseError, transaction

from shared.domain.base import Aggregate, DomainEvent
from shared.domain.exceptions import InfrastructureError

logger = logging.getLogger(__name__)


class DjangoUnitOfWork:
    """
    Transaction boundary of a booking lifecycle step

    Stock rows, the booking row and room unit rows written inside the block
    either all commit or all roll back.

    Usage:
        with DjangoUnitOfWork() as uow:
            booking = booking_repo.get_by_id(booking_id, lock=True)
            booking.confirm(payment_succeeded=True)
            uow.collect_events(booking)
            booking_repo.save(booking)
        # events are published once the outermost transaction commits

    A DatabaseError escaping the block surfaces as InfrastructureError so
    callers only ever see the domain error taxonomy.
    """

    def __init__(self, using: str | None = None):
        self._using = using
        self._events: List[DomainEvent] = []
        self._atomic = None

    def __enter__(self):
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        events, self._events = self._events, []
        if exc_type is None and events:
            transaction.on_commit(lambda: self._publish(events), using=self._using)
        elif exc_type is not None and events:
            logger.warning(f"Rolling back, {len(events)} event(s) discarded")

        try:
            self._atomic.__exit__(exc_type, exc_val, exc_tb)
        except DatabaseError as e:
            # Commit itself failed, e.g. a deferred constraint
            raise InfrastructureError(f"Storage failure on commit: {e}") from e

        if exc_type is not None and issubclass(exc_type, DatabaseError):
            raise InfrastructureError(f"Storage failure: {exc_val}") from exc_val
        return False

    def collect_events(self, *aggregates: Aggregate):
        for aggregate in aggregates:
            pulled = aggregate.pull_events()
            if pulled:
                self._events.extend(pulled)
                logger.debug(
                    f"Collected {len(pulled)} event(s) from {aggregate.__class__.__name__} {aggregate.id}"
                )

    @staticmethod
    def _publish(events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain event(s) after commit")
        message_bus.publish_events(events)
