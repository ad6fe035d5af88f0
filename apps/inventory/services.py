"""
Inventory Ledger

Atomic multi-night stock allocation and release for room types, plus the
administrative seeding operations whose edits the ledger must respect.

Reservation is a single operation: load and lock every row of the range,
check every night, decrement every night, save with version checks. There
is no separate "check availability, then decrement" path; check_availability
is an advisory read only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence, Tuple
from uuid import UUID

from django.conf import settings  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import Count, F, Q  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.dateparse import parse_date  # type: ignore

from apps.rooms.models import RoomType, RoomUnit
from apps.rooms.services import get_active_room_type
from shared.domain.exceptions import DomainValidationError
from shared.domain.value_objects import DateRange
from shared.infrastructure.db import lock_queryset_if_possible

from .domain import (
    DuplicateInventoryDay,
    InventoryDay,
    MissingInventory,
    StaleInventory,
    StockLedger,
    validate_quantity,
)
from .models import RoomInventoryDay
from .repositories import DayKey, DjangoInventoryRepository, Window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Availability:
    room_type_id: UUID
    dates: DateRange
    quantity: int
    available: bool
    min_rooms_available: int
    days: Tuple[Dict[str, Any], ...] = ()
    missing_dates: Tuple[date, ...] = ()


@dataclass
class SeedResult:
    created: int = 0
    updated: int = 0
    duplicates_removed: int = 0

    @property
    def processed(self) -> int:
        return self.created + self.updated


@dataclass
class Forecast:
    room_type_id: UUID
    start_date: date
    days: int
    rows: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def days_with_data(self) -> int:
        return len(self.rows)

    @property
    def min_available(self) -> int:
        return min((row["available_count"] for row in self.rows), default=0)

    @property
    def max_available(self) -> int:
        return max((row["available_count"] for row in self.rows), default=0)

    @property
    def average_available(self) -> int:
        if not self.rows:
            return 0
        return round(sum(row["available_count"] for row in self.rows) / len(self.rows))

    @property
    def occupancy_rate(self) -> int:
        """Percentage of stock held across the forecast window"""
        total = sum(row["total_stock"] for row in self.rows)
        if not total:
            return 0
        held = sum(row["total_stock"] - row["available_count"] for row in self.rows)
        return round(held * 100 / total)


def coerce_date(value, label: str = "date") -> date:
    """Accept a date or an ISO formatted string"""
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value)) if value else None
    except ValueError:
        # well formed but impossible, e.g. 2025-02-30
        parsed = None
    if parsed is None:
        raise DomainValidationError(f"Invalid {label} format. Use YYYY-MM-DD", value=value)
    return parsed


def coerce_range(check_in, check_out) -> DateRange:
    start = coerce_date(check_in, "check-in date")
    end = coerce_date(check_out, "check-out date")
    if start >= end:
        raise DomainValidationError("Check-out date must be after check-in date")
    return DateRange(start, end)


def coerce_count(value) -> int:
    """Whole number from JSON or CSV input, without truncation"""
    if isinstance(value, bool):
        raise ValueError(f"{value!r} is not a whole number")
    if isinstance(value, (float, Decimal)) and value != int(value):
        raise ValueError(f"{value!r} is not a whole number")
    return int(value)


def _validate_stock(total_stock: int, available_count: int, prefix: str = "") -> None:
    if total_stock is None or total_stock <= 0:
        raise DomainValidationError(f"{prefix}Total stock must be greater than 0")
    if available_count is None or available_count < 0:
        raise DomainValidationError(f"{prefix}Available count cannot be negative")
    if available_count > total_stock:
        raise DomainValidationError(f"{prefix}Available count cannot exceed total stock")


class InventoryLedger:
    """
    Service facade over StockLedger aggregates

    Every write runs in a savepoint so a stale-version failure rolls back
    the rows already written in that attempt; the attempt is then retried
    from a fresh read, up to max_retries times.
    """

    def __init__(self, repository: DjangoInventoryRepository | None = None, max_retries: int | None = None):
        self.repository = repository or DjangoInventoryRepository()
        self.max_retries = max_retries or getattr(settings, "INVENTORY_MAX_RETRIES", 3)

    # ===== Booking-facing operations =====

    def reserve_range(self, room_type_id: UUID, dates: DateRange, quantity: int = 1) -> StockLedger:
        """
        Hold quantity rooms for every night of dates, all or nothing

        Raises:
            DomainValidationError: quantity < 1
            MissingInventory: a night has no stock row
            InsufficientStock: a night cannot cover quantity
            StaleInventory: concurrent writers kept winning after retries
        """
        validate_quantity(quantity)

        def apply(days: Dict[DayKey, InventoryDay]) -> List[StockLedger]:
            ledger = self.repository.build_ledger(room_type_id, dates, days)
            ledger.reserve(quantity)
            return [ledger]

        ledger = self._write([(room_type_id, dates)], apply)[0]
        logger.info(f"Reserved {quantity} x {room_type_id} for {dates}")
        return ledger

    def release_range(self, room_type_id: UUID, dates: DateRange, quantity: int = 1) -> StockLedger:
        """Give quantity rooms back for every night, capped at total_stock"""
        validate_quantity(quantity)

        def apply(days: Dict[DayKey, InventoryDay]) -> List[StockLedger]:
            ledger = self.repository.build_ledger(room_type_id, dates, days)
            ledger.release(quantity)
            return [ledger]

        ledger = self._write([(room_type_id, dates)], apply)[0]
        logger.info(f"Released {quantity} x {room_type_id} for {dates}")
        return ledger

    def move_range(
        self,
        old_room_type_id: UUID,
        old_dates: DateRange,
        new_room_type_id: UUID,
        new_dates: DateRange,
        quantity: int = 1,
    ) -> Tuple[StockLedger, StockLedger]:
        """
        Release the old range and reserve the new one as a single write

        Both windows are locked by one ordered query. Overlapping windows
        share InventoryDay objects, so nights common to both ranges end
        up unchanged. If the new range cannot be reserved nothing is saved.
        """
        validate_quantity(quantity)
        windows = [(old_room_type_id, old_dates), (new_room_type_id, new_dates)]

        def apply(days: Dict[DayKey, InventoryDay]) -> List[StockLedger]:
            released = self.repository.build_ledger(old_room_type_id, old_dates, days)
            reserved = self.repository.build_ledger(new_room_type_id, new_dates, days)
            released.release(quantity)
            reserved.reserve(quantity)
            return [released, reserved]

        released, reserved = self._write(windows, apply)
        logger.info(
            f"Moved {quantity} room(s) from {old_room_type_id} {old_dates} "
            f"to {new_room_type_id} {new_dates}"
        )
        return released, reserved

    def check_availability(self, room_type_id: UUID, dates: DateRange, quantity: int = 1) -> Availability:
        """Advisory read: can quantity rooms be held for the whole range right now?"""
        validate_quantity(quantity)
        get_active_room_type(room_type_id)

        ledger = self.repository.get_ledger(room_type_id, dates, lock=False)
        return Availability(
            room_type_id=room_type_id,
            dates=dates,
            quantity=quantity,
            available=ledger.can_reserve(quantity),
            min_rooms_available=ledger.min_available(),
            days=tuple(
                {
                    "date": night,
                    "available_count": ledger.days[night].available_count if night in ledger.days else 0,
                    "total_stock": ledger.days[night].total_stock if night in ledger.days else 0,
                }
                for night in dates
            ),
            missing_dates=tuple(ledger.missing_dates()),
        )

    def _write(
        self,
        windows: Sequence[Window],
        apply: Callable[[Dict[DayKey, InventoryDay]], List[StockLedger]],
    ) -> List[StockLedger]:
        for attempt in range(1, self.max_retries + 1):
            try:
                with transaction.atomic():
                    days = self.repository.load_days(windows, lock=True)
                    ledgers = apply(days)
                    self.repository.save(ledgers)
                return ledgers
            except StaleInventory:
                if attempt >= self.max_retries:
                    logger.error(f"Giving up on inventory write after {attempt} attempts")
                    raise
                logger.warning(f"Inventory write conflict, retrying (attempt {attempt + 1}/{self.max_retries})")
        raise StaleInventory("Inventory write was not attempted")  # max_retries < 1

    # ===== Administrative seeding =====

    def create_day(self, room_type_id: UUID, day, total_stock: int, available_count: int | None = None) -> RoomInventoryDay:
        """Initialise stock for one date"""
        day = coerce_date(day)
        available_count = total_stock if available_count is None else available_count
        _validate_stock(total_stock, available_count)
        room_type = get_active_room_type(room_type_id)

        if RoomInventoryDay.objects.filter(room_type=room_type, date=day).exists():
            raise DuplicateInventoryDay(
                "Room inventory for this room type and date already exists",
                room_type_id=room_type_id,
                date=day,
            )
        try:
            with transaction.atomic():
                row = RoomInventoryDay.objects.create(
                    room_type=room_type,
                    date=day,
                    total_stock=total_stock,
                    available_count=available_count,
                )
        except IntegrityError:
            raise DuplicateInventoryDay(
                "Room inventory for this room type and date already exists",
                room_type_id=room_type_id,
                date=day,
            )
        logger.info(f"Inventory created for {room_type.name} on {day}: {available_count}/{total_stock}")
        return row

    def adjust_day(
        self,
        room_type_id: UUID,
        day,
        available_count: int | None = None,
        total_stock: int | None = None,
    ) -> RoomInventoryDay:
        """
        Manual stock adjustment for one date

        Lowering total_stock below what bookings hold is allowed; later
        releases are clamped to the new ceiling.
        """
        day = coerce_date(day)
        if available_count is None and total_stock is None:
            raise DomainValidationError("At least one of available_count or total_stock must be provided")

        with transaction.atomic():
            row = lock_queryset_if_possible(
                RoomInventoryDay.objects.filter(room_type_id=room_type_id, date=day)
            ).first()
            if row is None:
                raise MissingInventory(
                    "Room inventory not found for the specified date",
                    dates=[day],
                    room_type_id=room_type_id,
                )

            new_total = row.total_stock if total_stock is None else total_stock
            new_available = row.available_count if available_count is None else available_count
            if available_count is None and new_available > new_total:
                # Lowered ceiling: clamp what is left to sell
                new_available = new_total
            _validate_stock(new_total, new_available)

            updated = RoomInventoryDay.objects.filter(pk=row.pk, version=row.version).update(
                total_stock=new_total,
                available_count=new_available,
                version=F("version") + 1,
                updated_at=timezone.now(),
            )
            if updated != 1:
                raise StaleInventory(
                    f"Inventory for {day} was changed by another operation",
                    room_type_id=room_type_id,
                    date=day,
                )
            row.refresh_from_db()

        logger.info(f"Inventory adjusted for {room_type_id} on {day}: {row.available_count}/{row.total_stock}")
        return row

    def seed_days(self, room_type_id: UUID, rows: Iterable[Mapping[str, Any]]) -> SeedResult:
        """
        Bulk upsert stock rows for a room type

        Each row needs date, total_stock and available_count (defaults to
        total_stock). Duplicate dates keep the last occurrence. The whole
        batch commits or none of it does.
        """
        room_type = get_active_room_type(room_type_id)
        rows = list(rows)
        if not rows:
            raise DomainValidationError("Inventory data must be a non-empty list")

        validated: Dict[date, Tuple[int, int]] = {}
        for index, item in enumerate(rows, start=1):
            prefix = f"Row {index}: "
            if "date" not in item or item.get("total_stock") in (None, ""):
                raise DomainValidationError(f"{prefix}Missing required fields (date, total_stock)")
            try:
                total = coerce_count(item["total_stock"])
                raw_available = item.get("available_count")
                available = total if raw_available in (None, "") else coerce_count(raw_available)
            except (TypeError, ValueError, OverflowError):
                raise DomainValidationError(f"{prefix}Stock values must be whole numbers")
            try:
                day = coerce_date(item["date"])
            except DomainValidationError as exc:
                raise DomainValidationError(f"{prefix}{exc.message}")
            _validate_stock(total, available, prefix)
            # Later rows win
            validated.pop(day, None)
            validated[day] = (total, available)

        result = SeedResult(duplicates_removed=len(rows) - len(validated))
        if result.duplicates_removed:
            logger.warning(f"{result.duplicates_removed} duplicate date entries were removed")

        with transaction.atomic():
            existing = {
                row.date: row
                for row in lock_queryset_if_possible(
                    RoomInventoryDay.objects.filter(room_type=room_type, date__in=list(validated)).order_by("date")
                )
            }
            to_create = []
            for day, (total, available) in sorted(validated.items()):
                row = existing.get(day)
                if row is None:
                    to_create.append(RoomInventoryDay(
                        room_type=room_type,
                        date=day,
                        total_stock=total,
                        available_count=available,
                    ))
                    continue
                RoomInventoryDay.objects.filter(pk=row.pk).update(
                    total_stock=total,
                    available_count=available,
                    version=F("version") + 1,
                    updated_at=timezone.now(),
                )
                result.updated += 1
            RoomInventoryDay.objects.bulk_create(to_create)
            result.created = len(to_create)

        logger.info(
            f"Bulk inventory upload for {room_type.name}: "
            f"{result.created} created, {result.updated} updated"
        )
        return result

    def forecast(self, room_type_id: UUID, days: int = 30, today: date | None = None) -> Forecast:
        """Projected availability for the next days"""
        if not 1 <= days <= 365:
            raise DomainValidationError("Days must be between 1 and 365")
        get_active_room_type(room_type_id)
        start = today or timezone.localdate()
        window = DateRange(start, start + timedelta(days=days))
        rows = [
            {
                "date": row.date,
                "available_count": row.available_count,
                "total_stock": row.total_stock,
            }
            for row in self.repository.list_days(room_type_id, window)
        ]
        return Forecast(room_type_id=room_type_id, start_date=start, days=days, rows=rows)

    def extend_horizon(self, days: int | None = None, today: date | None = None) -> int:
        """
        Create missing rows from today forward for every active room type

        New rows start fully available with total_stock equal to the
        number of units of the type that are not under maintenance.
        Existing rows are never touched. Returns the number of rows created.
        """
        days = days or getattr(settings, "INVENTORY_HORIZON_DAYS", 90)
        start = today or timezone.localdate()
        window = DateRange(start, start + timedelta(days=days))

        room_types = RoomType.active.annotate(
            sellable_units=Count("units", filter=~Q(units__status=RoomUnit.Status.MAINTENANCE)),
        )

        created = 0
        for room_type in room_types:
            if not room_type.sellable_units:
                continue
            existing = set(
                RoomInventoryDay.objects.filter(
                    room_type=room_type,
                    date__gte=window.start_date,
                    date__lt=window.end_date,
                ).values_list("date", flat=True)
            )
            missing = [
                RoomInventoryDay(
                    room_type=room_type,
                    date=night,
                    total_stock=room_type.sellable_units,
                    available_count=room_type.sellable_units,
                )
                for night in window
                if night not in existing
            ]
            if missing:
                RoomInventoryDay.objects.bulk_create(missing, ignore_conflicts=True)
                # Dates a concurrent writer took first are skipped by the insert
                added = RoomInventoryDay.objects.filter(pk__in=[row.pk for row in missing]).count()
                created += added
                logger.info(f"Extended inventory horizon for {room_type.name}: {added} new day(s)")
        return created
