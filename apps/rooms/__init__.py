"""Rooms app package.

Room type catalog, physical room units and the assignment of units to
bookings at check-in time, with an audited housekeeping status history.
"""
