"""
Pydantic schema definitions.

Each domain (bookings, services, accounts, statistics) defines its own
models.  Services build fresh instances from database rows on every
call, so callers never hold a live reference into the store.
"""

from .account import Account, Role  # noqa: F401
from .booking import Booking, BookingCreate, BookingInterval, BookingStatus  # noqa: F401
from .service import Service, ServiceCreate, ServiceUpdate  # noqa: F401
from .statistics import PopularService  # noqa: F401
