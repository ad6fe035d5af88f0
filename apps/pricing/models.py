"""Daily rate overrides."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class DailyRate(models.Model):
    """Price for one night of a room type, overriding its base price."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room_type = models.ForeignKey(
        "rooms.RoomType",
        on_delete=models.CASCADE,
        related_name="daily_rates",
    )
    date = models.DateField()
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, default="USD")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Daily rate")
        verbose_name_plural = _("Daily rates")
        ordering = ["room_type_id", "date"]
        constraints = [
            models.UniqueConstraint(
                fields=["room_type", "date"],
                name="daily_rate_unique_room_type_date",
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="daily_rate_price_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.room_type_id} @ {self.date}: {self.price} {self.currency}"
