"""
Rate Resolver

Nightly price for a room type: the DailyRate override for the date when
one exists, otherwise the room type's base price. A pure read, so it takes
no locks and returns the same quote for the same inputs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List
from uuid import UUID

from django.conf import settings  # type: ignore

from apps.rooms.services import get_active_room_type
from shared.domain.value_objects import DateRange, Money

from .models import DailyRate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NightlyRate:
    date: date
    price: Money
    is_custom_rate: bool = False


@dataclass(frozen=True)
class PriceQuote:
    """Per-night breakdown of a stay and its total"""
    room_type_id: UUID
    dates: DateRange
    base_price: Money
    nights: List[NightlyRate] = field(default_factory=list)

    @property
    def total(self) -> Money:
        total = Money.zero(self.base_price.currency)
        for night in self.nights:
            total = total + night.price
        return total.quantized()

    @property
    def min_price(self) -> Money:
        return min(night.price for night in self.nights)

    @property
    def max_price(self) -> Money:
        return max(night.price for night in self.nights)

    @property
    def average_price(self) -> Money:
        return (self.total / len(self.nights)).quantized()

    @property
    def custom_rate_nights(self) -> int:
        return sum(1 for night in self.nights if night.is_custom_rate)

    def as_breakdown(self) -> List[Dict[str, object]]:
        return [
            {
                "date": night.date.isoformat(),
                "price": str(night.price.amount),
                "is_custom_rate": night.is_custom_rate,
            }
            for night in self.nights
        ]


class RateResolver:
    """Resolves nightly prices for a stay"""

    def price_range(self, room_type_id: UUID, dates: DateRange) -> PriceQuote:
        """
        Price every night of dates

        Raises:
            RoomTypeNotFound: room type missing or soft-deleted
        """
        room_type = get_active_room_type(room_type_id)
        currency = getattr(settings, "HOTEL_CURRENCY", "USD")
        base_price = Money(room_type.base_price, currency)

        overrides = {
            rate.date: rate.price
            for rate in DailyRate.objects.filter(
                room_type_id=room_type.id,
                date__gte=dates.start_date,
                date__lt=dates.end_date,
            )
        }

        nights = [
            NightlyRate(night, Money(overrides[night], currency), True)
            if night in overrides
            else NightlyRate(night, base_price, False)
            for night in dates
        ]
        quote = PriceQuote(
            room_type_id=room_type.id,
            dates=dates,
            base_price=base_price,
            nights=nights,
        )
        logger.debug(f"Priced {room_type.name} for {dates}: {quote.total} ({quote.custom_rate_nights} custom)")
        return quote
