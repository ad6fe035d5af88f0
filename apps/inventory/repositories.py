"""
Inventory Repository

Translates RoomInventoryDay rows into InventoryDay entities and back.

Locking order: every operation loads ALL rows it will touch in a single
query ordered by (room_type_id, date). Two transactions contending for
overlapping ranges therefore acquire row locks in the same order and
cannot deadlock each other.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence, Tuple
from datetime import date
from uuid import UUID

from django.db.models import F, Q  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.value_objects import DateRange
from shared.infrastructure.db import lock_queryset_if_possible

from .domain import InventoryDay, StaleInventory, StockLedger
from .models import RoomInventoryDay

logger = logging.getLogger(__name__)

DayKey = Tuple[UUID, date]
Window = Tuple[UUID, DateRange]


class DjangoInventoryRepository:
    """Django ORM persistence for stock rows"""

    def load_days(self, windows: Sequence[Window], lock: bool = True) -> Dict[DayKey, InventoryDay]:
        """
        Load every row covering the given windows

        With lock=True inside a transaction the rows are selected
        FOR UPDATE in (room_type_id, date) order.
        """
        condition = Q()
        for room_type_id, dates in windows:
            condition |= Q(
                room_type_id=room_type_id,
                date__gte=dates.start_date,
                date__lt=dates.end_date,
            )

        queryset = RoomInventoryDay.objects.filter(condition).order_by("room_type_id", "date")
        if lock:
            queryset = lock_queryset_if_possible(queryset)

        return {
            (row.room_type_id, row.date): self._to_domain(row)
            for row in queryset
        }

    def build_ledger(self, room_type_id: UUID, dates: DateRange, days: Dict[DayKey, InventoryDay]) -> StockLedger:
        """Assemble a ledger from already loaded rows (rows may be shared between ledgers)"""
        return StockLedger(
            room_type_id=room_type_id,
            dates=dates,
            days={
                night: days[(room_type_id, night)]
                for night in dates
                if (room_type_id, night) in days
            },
        )

    def get_ledger(self, room_type_id: UUID, dates: DateRange, lock: bool = True) -> StockLedger:
        days = self.load_days([(room_type_id, dates)], lock=lock)
        return self.build_ledger(room_type_id, dates, days)

    def save_days(self, days: Iterable[InventoryDay]) -> int:
        """
        Write back changed rows with a version compare-and-swap

        Raises:
            StaleInventory: a row changed since it was loaded
        """
        saved = 0
        now = timezone.now()
        for day in days:
            if not day.dirty:
                continue
            updated = RoomInventoryDay.objects.filter(
                pk=day.id,
                version=day.version,
            ).update(
                available_count=day.available_count,
                version=F("version") + 1,
                updated_at=now,
            )
            if updated != 1:
                logger.warning(
                    f"Stale inventory row {day.room_type_id} @ {day.date} "
                    f"(expected version {day.version})"
                )
                raise StaleInventory(
                    f"Inventory for {day.date} was changed by another operation",
                    room_type_id=day.room_type_id,
                    date=day.date,
                )
            day.version += 1
            day.dirty = False
            saved += 1
        return saved

    def save(self, ledgers: Sequence[StockLedger]) -> int:
        """Save the rows of one or more ledgers, each row once"""
        unique: Dict[UUID, InventoryDay] = {}
        for ledger in ledgers:
            for day in ledger.dirty_days():
                unique[day.id] = day
        ordered = sorted(unique.values(), key=lambda d: (str(d.room_type_id), d.date))
        return self.save_days(ordered)

    def list_days(self, room_type_id: UUID, dates: DateRange) -> List[RoomInventoryDay]:
        return list(
            RoomInventoryDay.objects.filter(
                room_type_id=room_type_id,
                date__gte=dates.start_date,
                date__lt=dates.end_date,
            ).order_by("date")
        )

    @staticmethod
    def _to_domain(row: RoomInventoryDay) -> InventoryDay:
        return InventoryDay(
            id=row.id,
            room_type_id=row.room_type_id,
            date=row.date,
            total_stock=row.total_stock,
            available_count=row.available_count,
            version=row.version,
        )
