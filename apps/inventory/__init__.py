"""Inventory app package.

Per-date stock rows for each room type and the ledger that holds and
releases them for bookings without ever overselling.
"""
