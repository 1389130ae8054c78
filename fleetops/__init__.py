# fleetops/__init__.py

"""Fleet operations back office: bookings, duty logs, expense/receiving entries, settlements and wallets."""

__version__ = "1.0.0"
