import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("hotel_reservations")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Keep the sellable calendar rolling forward - every night
    "extend-inventory-horizon": {
        "task": "inventory.extend_inventory_horizon",
        "schedule": crontab(minute=30, hour=2),
    },
}
