"""
Top‑level package for the Salon Booking Engine.

Bookings, services and operator accounts for a single-chair salon,
stored in a local SQLite file, with conflict detection and a daily
slot grid on top.  Everything lives in submodules under ``app``; the
engine factory is re-exported here for convenience.
"""

from .app.core.errors import (  # noqa: F401
    BookingEngineError,
    DuplicateError,
    IntegrityError,
    NotFoundError,
    SlotUnavailableError,
    StorageError,
    ValidationError,
)
from .app.main import BookingEngine, create_engine  # noqa: F401

__all__ = [
    "BookingEngine",
    "create_engine",
    "BookingEngineError",
    "DuplicateError",
    "IntegrityError",
    "NotFoundError",
    "SlotUnavailableError",
    "StorageError",
    "ValidationError",
]
