"""REST helpers: map the domain error taxonomy onto HTTP responses."""

from __future__ import annotations

import logging

from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from shared.domain.exceptions import (
    ConflictError,
    DomainError,
    DomainValidationError,
    InfrastructureError,
    InvalidStateError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (DomainValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (InfrastructureError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: DomainError) -> int:
    for error_type, http_status in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def domain_exception_handler(exc, context):
    """DRF exception handler that understands DomainError."""

    if isinstance(exc, DomainError):
        http_status = status_for(exc)
        if http_status >= 500:
            logger.error(f"System error in {context.get('view').__class__.__name__}: {exc}")
        return Response(exc.to_dict(), status=http_status)
    return exception_handler(exc, context)
