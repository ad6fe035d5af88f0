"""Load room stock for one room type from a CSV file."""

import csv

from django.core.management.base import BaseCommand, CommandError

from apps.inventory.services import InventoryLedger
from apps.rooms.models import RoomType
from shared.domain.exceptions import DomainError


class Command(BaseCommand):
    help = 'Seeds RoomInventoryDay rows from a CSV with columns date,total_stock,available_count'

    def add_arguments(self, parser):
        parser.add_argument('room_type_slug')
        parser.add_argument('csv_path')

    def handle(self, *args, **options):
        try:
            room_type = RoomType.active.get(slug=options['room_type_slug'])
        except RoomType.DoesNotExist:
            raise CommandError(f"Room type '{options['room_type_slug']}' not found")

        try:
            with open(options['csv_path'], newline='', encoding='utf-8') as handle:
                rows = list(csv.DictReader(handle))
        except OSError as exc:
            raise CommandError(f"Cannot read {options['csv_path']}: {exc}")

        try:
            result = InventoryLedger().seed_days(room_type.id, rows)
        except DomainError as exc:
            raise CommandError(exc.message)

        if result.duplicates_removed:
            self.stdout.write(
                self.style.WARNING(f"{result.duplicates_removed} duplicate date(s) ignored, last row kept")
            )
        self.stdout.write(
            self.style.SUCCESS(
                f"{room_type.name}: {result.created} created, {result.updated} updated"
            )
        )
