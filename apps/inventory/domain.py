"""
Stock Ledger Aggregate

This is the CRITICAL aggregate for preventing overbooking.
Every hold and release of room stock MUST go through this aggregate.

A StockLedger covers one room type over a half-open date range and owns
the InventoryDay rows for every night in it. It is the consistency
boundary that guarantees, per (room type, date):

    0 <= available_count <= total_stock

Strategy (Defense in Depth):
1. Domain validation: reserve() checks every night before touching any
2. Pessimistic locking: SELECT FOR UPDATE, rows ordered by (room type, date)
3. Optimistic check: version compare-and-swap on save
4. Database constraints: CHECK available_count BETWEEN 0 AND total_stock
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List
from uuid import UUID

from shared.domain.base import Aggregate, DomainEvent, Entity
from shared.domain.exceptions import ConflictError, DomainValidationError, NotFoundError
from shared.domain.value_objects import DateRange


class MissingInventory(NotFoundError):
    code = 'missing_inventory'

    def __init__(self, message: str = '', dates: List[date] | None = None, **details):
        super().__init__(message, dates=dates or [], **details)
        self.dates = dates or []


class InsufficientStock(ConflictError):
    code = 'insufficient_stock'

    def __init__(self, message: str = '', dates: List[date] | None = None, **details):
        super().__init__(message, dates=dates or [], **details)
        self.dates = dates or []


class StaleInventory(ConflictError):
    """A concurrent writer changed a stock row between load and save."""
    code = 'stale_inventory'


class DuplicateInventoryDay(ConflictError):
    code = 'duplicate_inventory_day'


def validate_quantity(quantity: int) -> int:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise DomainValidationError("Quantity must be at least 1", quantity=quantity)
    return quantity


@dataclass(kw_only=True, eq=False)
class InventoryDay(Entity):
    """
    InventoryDay entity - stock of a room type for one night

    version is the value read from storage; the repository only writes the
    row back if storage still holds that version.
    """
    room_type_id: UUID
    date: date
    total_stock: int
    available_count: int
    version: int = 0
    dirty: bool = field(default=False, repr=False)

    def __post_init__(self):
        if self.total_stock < 0:
            raise DomainValidationError("Total stock cannot be negative", date=self.date)
        if not 0 <= self.available_count <= self.total_stock:
            raise DomainValidationError(
                f"Available count {self.available_count} must be between 0 and "
                f"total stock {self.total_stock}",
                date=self.date,
            )

    def can_hold(self, quantity: int) -> bool:
        return self.available_count >= quantity

    def hold(self, quantity: int):
        """Take quantity rooms out of stock for this night"""
        if not self.can_hold(quantity):
            raise InsufficientStock(
                f"Only {self.available_count} room(s) left on {self.date}, {quantity} requested",
                dates=[self.date],
            )
        self.available_count -= quantity
        self.dirty = True

    def credit(self, quantity: int) -> int:
        """
        Give quantity rooms back, never above total_stock

        total_stock may have been lowered administratively while the rooms
        were held; the excess is dropped. Returns the amount applied.
        """
        new_available = min(self.available_count + quantity, self.total_stock)
        applied = new_available - self.available_count
        if applied:
            self.available_count = new_available
            self.dirty = True
        return applied


@dataclass(kw_only=True)
class InventoryReserved(DomainEvent):
    """Event: stock held for every night of a range"""
    room_type_id: UUID
    dates: DateRange
    quantity: int


@dataclass(kw_only=True)
class InventoryReleased(DomainEvent):
    """Event: stock given back for every night of a range"""
    room_type_id: UUID
    dates: DateRange
    quantity: int
    clamped_dates: List[date] = field(default_factory=list)


@dataclass(kw_only=True, eq=False)
class StockLedger(Aggregate):
    """
    StockLedger Aggregate Root

    Key invariants:
    - A reservation is all-or-nothing across the date range
    - available_count never drops below zero
    - available_count never rises above total_stock

    Usage:
        # Load ledger with rows locked (SELECT FOR UPDATE, ascending date)
        ledger = inventory_repo.lock_ledger(room_type_id, dates)

        ledger.reserve(quantity=1)      # raises before mutating anything
        inventory_repo.save(ledger)     # version compare-and-swap
    """

    room_type_id: UUID
    dates: DateRange
    days: Dict[date, InventoryDay] = field(default_factory=dict)

    def missing_dates(self) -> List[date]:
        return [night for night in self.dates if night not in self.days]

    def nights(self) -> List[InventoryDay]:
        """Rows for the range in ascending date order (missing nights skipped)"""
        return [self.days[night] for night in self.dates if night in self.days]

    def min_available(self) -> int:
        """Bottleneck: the most rooms bookable for the whole range"""
        if self.missing_dates():
            return 0
        return min(day.available_count for day in self.nights())

    def can_reserve(self, quantity: int = 1) -> bool:
        return not self.missing_dates() and self.min_available() >= quantity

    def reserve(self, quantity: int = 1):
        """
        Hold quantity rooms for every night of the range

        All nights are checked before any is decremented, so a failure
        leaves every row untouched.

        Raises:
            DomainValidationError: quantity < 1
            MissingInventory: a night has no stock row
            InsufficientStock: a night has fewer than quantity rooms
        """
        validate_quantity(quantity)

        missing = self.missing_dates()
        if missing:
            raise MissingInventory(
                f"No inventory for room type {self.room_type_id} on "
                f"{', '.join(d.isoformat() for d in missing)}",
                dates=missing,
            )

        short = [day.date for day in self.nights() if not day.can_hold(quantity)]
        if short:
            raise InsufficientStock(
                f"Insufficient inventory on dates: {', '.join(d.isoformat() for d in short)}",
                dates=short,
                room_type_id=self.room_type_id,
            )

        for day in self.nights():
            day.hold(quantity)

        self.add_event(InventoryReserved(
            aggregate_id=self.id,
            room_type_id=self.room_type_id,
            dates=self.dates,
            quantity=quantity,
        ))

    def release(self, quantity: int = 1):
        """
        Give quantity rooms back for every night of the range

        Each night is capped at its total_stock. A missing row means the
        ledger is corrupt (rows are never deleted while referenced), so it
        fails instead of silently skipping the night.
        """
        validate_quantity(quantity)

        missing = self.missing_dates()
        if missing:
            raise MissingInventory(
                f"Cannot release stock, no inventory for room type {self.room_type_id} on "
                f"{', '.join(d.isoformat() for d in missing)}",
                dates=missing,
            )

        clamped = []
        for day in self.nights():
            if day.credit(quantity) < quantity:
                clamped.append(day.date)

        self.add_event(InventoryReleased(
            aggregate_id=self.id,
            room_type_id=self.room_type_id,
            dates=self.dates,
            quantity=quantity,
            clamped_dates=clamped,
        ))

    def dirty_days(self) -> List[InventoryDay]:
        return [day for day in self.nights() if day.dirty]

    def __str__(self):
        return f"StockLedger(room_type={self.room_type_id}, dates={self.dates})"
