"""Database helpers shared by the repositories."""

from __future__ import annotations

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore


def lock_queryset_if_possible(queryset, using: str | None = None):
    """Apply select_for_update when inside transaction.atomic().

    Outside of an atomic block a row lock would be released immediately,
    so the queryset is returned untouched. Backends without row locks
    (SQLite) fall back to the version compare-and-swap done on save.
    """

    if not transaction.get_connection(using).in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset
