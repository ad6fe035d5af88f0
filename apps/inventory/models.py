"""Per-date stock rows for room types."""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class RoomInventoryDay(models.Model):
    """
    Stock of one room type for one calendar date.

    available_count is decremented when a booking holds a room for the
    night and incremented when the hold is released. version grows by one
    on every write and is checked on save (compare-and-swap), so two
    writers can never silently overwrite each other.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room_type = models.ForeignKey(
        "rooms.RoomType",
        on_delete=models.PROTECT,
        related_name="inventory_days",
    )
    date = models.DateField()
    total_stock = models.PositiveIntegerField()
    available_count = models.PositiveIntegerField()
    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Inventory day")
        verbose_name_plural = _("Inventory days")
        ordering = ["room_type_id", "date"]
        constraints = [
            models.UniqueConstraint(
                fields=["room_type", "date"],
                name="inventory_unique_room_type_date",
            ),
            models.CheckConstraint(
                condition=models.Q(available_count__gte=0),
                name="inventory_available_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(available_count__lte=models.F("total_stock")),
                name="inventory_available_within_total",
            ),
        ]
        indexes = [
            models.Index(fields=["room_type", "date"]),
        ]

    def __str__(self) -> str:
        return f"{self.room_type_id} @ {self.date}: {self.available_count}/{self.total_stock}"
