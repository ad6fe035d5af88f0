"""Room catalog lookups and room unit assignment."""

from __future__ import annotations

import logging
from typing import Iterable
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from django.db import transaction  # type: ignore

from shared.domain.exceptions import DomainValidationError
from shared.infrastructure.db import lock_queryset_if_possible

from .exceptions import RoomTypeMismatch, RoomTypeNotFound, RoomUnitNotFound, UnitUnavailable
from .models import RoomType, RoomUnit, RoomUnitHistory

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


def get_active_room_type(room_type_id: UUID) -> RoomType:
    """Return a room type that is not soft-deleted or raise RoomTypeNotFound."""

    try:
        return RoomType.active.get(pk=room_type_id)
    except (RoomType.DoesNotExist, DjangoValidationError):
        raise RoomTypeNotFound(
            f"Room type {room_type_id} not found or deleted",
            room_type_id=room_type_id,
        )


def _load_unit(room_unit_id: UUID, lock: bool = True) -> RoomUnit:
    try:
        queryset = RoomUnit.objects.filter(pk=room_unit_id)
        if lock:
            queryset = lock_queryset_if_possible(queryset)
        unit = queryset.first()
    except DjangoValidationError:
        unit = None
    if unit is None:
        raise RoomUnitNotFound(f"Room unit {room_unit_id} not found", room_unit_id=room_unit_id)
    return unit


class RoomUnitAssignment:
    """
    Maps bookings onto physical room units.

    Lifecycle driven transitions:
    - assign: AVAILABLE -> OCCUPIED (check-in, or later assignment)
    - release: OCCUPIED -> DIRTY (check-out)

    Housekeeping transitions (DIRTY -> AVAILABLE, any -> MAINTENANCE) go
    through change_status; the caller is assumed to be authorized.
    Every transition writes a RoomUnitHistory row.
    """

    def assign(self, booking, room_unit_id: UUID, actor: str = SYSTEM_ACTOR) -> RoomUnit:
        """
        Occupy a unit for a booking.

        Raises:
            RoomUnitNotFound: unit does not exist
            RoomTypeMismatch: unit belongs to another room type
            UnitUnavailable: unit is not AVAILABLE
        """
        unit = _load_unit(room_unit_id)

        if unit.room_type_id != booking.room_type_id:
            raise RoomTypeMismatch(
                f"Room unit {unit.room_number} is not a {booking.room_type_id} room",
                room_unit_id=unit.id,
                room_type_id=booking.room_type_id,
            )
        if unit.status != RoomUnit.Status.AVAILABLE:
            raise UnitUnavailable(
                f"Room unit {unit.room_number} is {unit.status}, not AVAILABLE",
                room_unit_id=unit.id,
                status=unit.status,
            )

        unit.transition_to(
            RoomUnit.Status.OCCUPIED,
            actor=actor,
            reason=f"Assigned to booking {booking.reference}",
        )
        logger.info(f"Room unit {unit.room_number} assigned to booking {booking.reference}")
        return unit

    def release(self, room_unit_id: UUID, actor: str = SYSTEM_ACTOR, reason: str = "Guest checked out") -> RoomUnit:
        """Mark an occupied unit as awaiting housekeeping."""

        unit = _load_unit(room_unit_id)
        if unit.status != RoomUnit.Status.OCCUPIED:
            raise UnitUnavailable(
                f"Room unit {unit.room_number} is {unit.status}, not OCCUPIED",
                room_unit_id=unit.id,
                status=unit.status,
            )
        unit.transition_to(RoomUnit.Status.DIRTY, actor=actor, reason=reason)
        logger.info(f"Room unit {unit.room_number} released, awaiting housekeeping")
        return unit

    def change_status(self, room_unit_id: UUID, status: str, actor: str, reason: str = "") -> RoomUnit:
        """Administrative status change with history."""

        new_status = self._validate_status(status)
        with transaction.atomic():
            unit = _load_unit(room_unit_id)
            if unit.status == new_status:
                raise DomainValidationError(
                    f"Room unit {unit.room_number} is already {unit.status}",
                    room_unit_id=unit.id,
                )
            if unit.status == RoomUnit.Status.OCCUPIED:
                raise UnitUnavailable(
                    f"Room unit {unit.room_number} is occupied; check the guest out first",
                    room_unit_id=unit.id,
                )
            unit.transition_to(new_status, actor=actor, reason=reason)
        logger.info(f"Room unit {unit.room_number} status changed to {new_status} by {actor}")
        return unit

    def bulk_change_status(
        self,
        room_unit_ids: Iterable[UUID],
        status: str,
        actor: str,
        reason: str = "",
    ) -> list[RoomUnit]:
        """Change several units at once; all or nothing."""

        new_status = self._validate_status(status)
        try:
            ids = [UUID(str(unit_id)) for unit_id in room_unit_ids]
        except ValueError:
            raise DomainValidationError("Room unit ids must be UUIDs")
        if not ids:
            raise DomainValidationError("At least one room unit is required")

        with transaction.atomic():
            units = list(
                lock_queryset_if_possible(RoomUnit.objects.filter(pk__in=ids).order_by("id"))
            )
            found = {unit.id for unit in units}
            missing = [unit_id for unit_id in ids if unit_id not in found]
            if missing:
                raise RoomUnitNotFound("Some room units were not found", room_unit_ids=missing)

            occupied = [unit.room_number for unit in units if unit.status == RoomUnit.Status.OCCUPIED]
            if occupied:
                raise UnitUnavailable(
                    f"Occupied units cannot change status: {', '.join(occupied)}",
                    room_numbers=occupied,
                )

            history = [
                RoomUnitHistory(
                    room_unit=unit,
                    old_status=unit.status,
                    new_status=new_status,
                    actor=actor,
                    reason=reason or "Bulk status update",
                )
                for unit in units
            ]
            RoomUnit.objects.filter(pk__in=found).update(status=new_status)
            RoomUnitHistory.objects.bulk_create(history)

        for unit in units:
            unit.status = new_status
        logger.info(f"{len(units)} room units changed to {new_status} by {actor}")
        return units

    @staticmethod
    def _validate_status(status: str) -> str:
        candidate = (status or "").upper()
        if candidate not in RoomUnit.Status.values:
            raise DomainValidationError(
                f"Invalid status. Must be one of: {', '.join(RoomUnit.Status.values)}"
            )
        if candidate == RoomUnit.Status.OCCUPIED:
            raise DomainValidationError("Units become OCCUPIED only through check-in assignment")
        return candidate
