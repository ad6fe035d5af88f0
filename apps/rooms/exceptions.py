"""Errors raised by the room catalog and unit assignment."""

from shared.domain.exceptions import ConflictError, NotFoundError


class RoomTypeNotFound(NotFoundError):
    code = 'room_type_not_found'


class RoomUnitNotFound(NotFoundError):
    code = 'room_unit_not_found'


class UnitUnavailable(ConflictError):
    code = 'unit_unavailable'


class RoomTypeMismatch(ConflictError):
    code = 'room_type_mismatch'
