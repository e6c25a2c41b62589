"""
Service layer.

Each service encapsulates business logic for one domain and receives
the ``Store`` it works on at construction time.
"""

from .account_service import AccountService  # noqa: F401
from .availability_service import AvailabilityService  # noqa: F401
from .booking_service import BookingService  # noqa: F401
from .catalog_service import CatalogService  # noqa: F401
from .statistics_service import StatisticsService  # noqa: F401
