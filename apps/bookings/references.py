"""Human readable booking references: BK-<YYYYMMDD>-<5 base36 chars>."""

from __future__ import annotations

import logging
import secrets
import string
from datetime import date
from typing import Callable

from django.utils import timezone  # type: ignore

from .domain.exceptions import ReferenceCollision

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "BK"
REFERENCE_ALPHABET = string.digits + string.ascii_uppercase
REFERENCE_SUFFIX_LENGTH = 5


def _candidate(today: date) -> str:
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_SUFFIX_LENGTH))
    return f"{REFERENCE_PREFIX}-{today:%Y%m%d}-{suffix}"


def generate_booking_reference(
    exists: Callable[[str], bool],
    today: date | None = None,
    max_attempts: int = 5,
) -> str:
    """
    Return a reference for which exists() is False.

    Tries at most max_attempts candidates, then raises ReferenceCollision.
    The unique constraint on Booking.reference still guards the insert
    itself, since another transaction may take the same value between the
    check and the write.
    """
    today = today or timezone.localdate()
    for attempt in range(1, max_attempts + 1):
        reference = _candidate(today)
        if not exists(reference):
            return reference
        logger.warning(f"Booking reference {reference} already taken (attempt {attempt}/{max_attempts})")
    raise ReferenceCollision(
        f"Could not generate a unique booking reference after {max_attempts} attempts",
        attempts=max_attempts,
    )
