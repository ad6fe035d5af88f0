"""
Domain building blocks shared by the reservation apps.

Aggregates are plain dataclasses: they enforce their own rules, record what
happened as DomainEvents, and know nothing about the ORM. Repositories turn
them into rows; the unit of work pulls their events once the rows are saved.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from typing import Any, List
from uuid import UUID, uuid4


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_primitive(value: Any) -> Any:
    """JSON friendly form of domain values (dates, UUIDs, Money, DateRange)"""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple, set)):
        return [to_primitive(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_primitive(item) for key, item in value.items()}
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_primitive(getattr(value, f.name)) for f in fields(value)}
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)


@dataclass(kw_only=True, eq=False)
class Entity:
    """
    Object with identity; two entities are equal when their ids are.

    Subclasses are declared with eq=False so this __eq__ survives.
    """
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def touch(self):
        self.updated_at = utc_now()

    def __eq__(self, other):
        return isinstance(other, self.__class__) and self.id == other.id

    def __hash__(self):
        return hash(self.id)


@dataclass(frozen=True)
class ValueObject:
    """Immutable value compared by its attributes."""


@dataclass(kw_only=True, eq=False)
class Aggregate(Entity):
    """Consistency boundary; records events until the unit of work pulls them."""

    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False)

    def add_event(self, event: 'DomainEvent'):
        self._events.append(event)

    def pull_events(self) -> List['DomainEvent']:
        """Hand over the recorded events and forget them"""
        events, self._events = self._events, []
        return events

    @property
    def events(self) -> List['DomainEvent']:
        return list(self._events)


@dataclass(kw_only=True)
class DomainEvent:
    """Something that happened to an aggregate, published after commit."""

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utc_now)
    aggregate_id: UUID | None = None

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict:
        payload = to_primitive(self)
        payload['event_type'] = self.event_type
        return payload
