"""
slotbook - weekly availability templates and bookings for venues.
"""

__version__ = "0.1.0"
