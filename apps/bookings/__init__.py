"""Bookings app package.

Owns the booking lifecycle: creation with an atomic stock hold,
confirmation against a successful payment, check-in with optional room
assignment, check-out, cancellation with stock release and modification
of pending bookings. Every transition runs in one database transaction.
"""
