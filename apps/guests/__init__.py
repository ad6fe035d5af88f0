"""Guests app package: the guest profiles bookings are made for."""
