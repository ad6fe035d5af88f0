from django.apps import AppConfig


class BookingsConfig(AppConfig):
    name = 'apps.bookings'
    label = 'bookings'
    verbose_name = 'Bookings'

    def ready(self):
        from apps.bookings.application.bootstrap import bootstrap

        bootstrap()
