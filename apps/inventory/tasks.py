"""Celery tasks for room stock."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .services import InventoryLedger

logger = logging.getLogger(__name__)


@shared_task(name="inventory.extend_inventory_horizon")
def extend_inventory_horizon(days: int | None = None) -> dict[str, int]:
    """
    Keep the sellable calendar rolling forward.

    Creates the missing RoomInventoryDay rows for every active room type
    from today up to the configured horizon. Existing rows, and the holds
    recorded in them, are left alone.

    Runs once a day through Celery Beat.

    Returns:
        dict: {"created": number of new rows}
    """
    created = InventoryLedger().extend_horizon(days=days)
    if created:
        logger.info(f"Inventory horizon extended with {created} new day(s)")
    return {"created": created}
