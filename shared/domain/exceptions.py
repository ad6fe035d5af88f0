"""
Domain Error Taxonomy

Every failure raised by the reservation core belongs to one of five
families. The REST layer maps the family to a status code; callers that
use the core directly can catch the family they care about.

- DomainValidationError: malformed request, rejected before storage is touched
- NotFoundError: a referenced record does not exist (or is soft-deleted)
- ConflictError: the request collides with current state (stock, uniqueness, unit status)
- InvalidStateError: lifecycle transition from the wrong status or after its date guard
- InfrastructureError: configuration or storage failure
"""

from shared.domain.base import to_primitive


class DomainError(Exception):
    """Base class for all reservation core errors"""

    code = 'domain_error'

    def __init__(self, message: str = '', **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {'code': self.code, 'detail': self.message}
        if self.details:
            payload['meta'] = {key: to_primitive(value) for key, value in self.details.items()}
        return payload


class DomainValidationError(DomainError):
    code = 'validation_error'


class NotFoundError(DomainError):
    code = 'not_found'


class ConflictError(DomainError):
    code = 'conflict'


class InvalidStateError(DomainError):
    code = 'invalid_state'


class InfrastructureError(DomainError):
    code = 'system_error'
