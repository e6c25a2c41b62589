"""
Application package initializer.

The engine is organised into logical pieces: ``core`` (configuration,
logging, errors, the SQLite store and its migrations), ``schemas``
(pydantic models handed to callers) and ``services`` (one class per
domain: accounts, catalog, bookings, availability, statistics).
``main`` wires them together.
"""

from .main import BookingEngine, create_engine  # noqa: F401
