"""
Main entrypoint for the booking engine.

This module assembles the store and its services.  ``create_engine``
sets up logging, opens (and migrates) the store and returns a
``BookingEngine`` holding one instance of every service, all sharing
the same ``Store``.  A host application (the salon's UI) creates one
engine at startup and closes it on exit::

    from salon_booking import create_engine

    with create_engine() as engine:
        if not engine.accounts.has_any_account():
            engine.accounts.create_account("owner", "secret")
        free = engine.availability.slot_availability(date.today(), 60)
"""

from typing import Optional

from .core.config import Settings, settings as default_settings
from .core.db import Store
from .core.logging_config import setup_logging
from .services.account_service import AccountService
from .services.availability_service import AvailabilityService
from .services.booking_service import BookingService
from .services.catalog_service import CatalogService
from .services.statistics_service import StatisticsService


class BookingEngine:
    """All services of one store, wired together."""

    def __init__(self, store: Store, settings: Optional[Settings] = None) -> None:
        self.settings = settings or default_settings
        self.store = store
        self.accounts = AccountService(store)
        self.catalog = CatalogService(store)
        self.bookings = BookingService(store, self.settings)
        self.availability = AvailabilityService(store, self.bookings, self.catalog, self.settings)
        self.statistics = StatisticsService(store)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "BookingEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def create_engine(path: Optional[str] = None, settings: Optional[Settings] = None) -> BookingEngine:
    """Create and configure a booking engine.

    Parameters
    ----------
    path : Optional[str]
        Store file to open.  Defaults to ``settings.database_path``.
    settings : Optional[Settings]
        Settings to use instead of the environment-derived defaults.

    Returns
    -------
    BookingEngine
        An engine whose store is open and migrated.
    """
    settings = settings or default_settings
    # Initialise logging before opening the store so that migration
    # messages are captured.
    setup_logging(settings.log_level, settings.log_file)
    store = Store(path or settings.database_path).open()
    return BookingEngine(store, settings)
