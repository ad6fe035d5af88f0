"""Payments app package: payment records consulted when bookings are confirmed."""
