"""Room catalog models.

A RoomType is what a guest books; a RoomUnit is the physical, numbered
room handed out at check-in. Unit housekeeping status changes are kept in
RoomUnitHistory so every transition can be audited.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.text import slugify  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ActiveRoomTypeManager(models.Manager):
    """Room types that are not soft-deleted."""

    def get_queryset(self):  # type: ignore
        return super().get_queryset().filter(deleted_at__isnull=True)


class RoomType(models.Model):
    """Bookable category of rooms (Deluxe King, Twin, Suite...)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120)
    slug = models.SlugField(max_length=140, unique=True)
    description = models.TextField(blank=True)
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    capacity = models.PositiveSmallIntegerField(default=2)
    size = models.CharField(max_length=50, blank=True)
    view = models.CharField(max_length=50, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = models.Manager()
    active = ActiveRoomTypeManager()

    class Meta:
        verbose_name = _("Room type")
        verbose_name_plural = _("Room types")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name

    def save(self, *args, **kwargs):  # type: ignore
        if not self.slug:
            self.slug = slugify(self.name)[:140]
        super().save(*args, **kwargs)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at", "updated_at"])


class RoomUnit(models.Model):
    """Physical room of a given type."""

    class Status(models.TextChoices):
        AVAILABLE = "AVAILABLE", _("Available")
        DIRTY = "DIRTY", _("Dirty")
        MAINTENANCE = "MAINTENANCE", _("Maintenance")
        OCCUPIED = "OCCUPIED", _("Occupied")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    room_type = models.ForeignKey(
        RoomType,
        on_delete=models.PROTECT,
        related_name="units",
    )
    room_number = models.CharField(max_length=20, unique=True)
    floor = models.SmallIntegerField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.AVAILABLE,
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Room unit")
        verbose_name_plural = _("Room units")
        ordering = ["room_number"]
        indexes = [
            models.Index(fields=["room_type", "status"]),
        ]

    def __str__(self) -> str:
        return f"Room {self.room_number} ({self.status})"

    def transition_to(self, new_status: str, actor: str, reason: str = "") -> "RoomUnitHistory":
        """Persist a status change together with its history row."""

        old_status = self.status
        self.status = new_status
        self.save(update_fields=["status", "updated_at"])
        return RoomUnitHistory.objects.create(
            room_unit=self,
            old_status=old_status,
            new_status=new_status,
            actor=actor,
            reason=reason,
        )


class RoomUnitHistory(models.Model):
    """Audit trail of room unit status changes."""

    room_unit = models.ForeignKey(
        RoomUnit,
        on_delete=models.CASCADE,
        related_name="history",
    )
    old_status = models.CharField(max_length=20, choices=RoomUnit.Status.choices)
    new_status = models.CharField(max_length=20, choices=RoomUnit.Status.choices)
    actor = models.CharField(max_length=120, default="system")
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Room unit history")
        verbose_name_plural = _("Room unit history")
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.room_unit.room_number}: {self.old_status} -> {self.new_status}"
