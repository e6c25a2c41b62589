"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields, so an
unconfigured installation opens ``salon_booking.db`` next to the
project root with the salon's usual 07:00 to 19:00 day split into
15‑minute slots.
"""

import os
from dataclasses import dataclass
from datetime import time
from typing import Optional


def _parse_clock(value: str) -> time:
    """Parse ``HH:MM`` into a ``datetime.time``."""
    hours, _, minutes = value.strip().partition(":")
    return time(int(hours), int(minutes or 0))


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Salon Booking Engine")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: Optional[str] = os.getenv("LOG_FILE") or None

    # Path of the SQLite store.  A relative path is resolved against the
    # project root by ``core.db``.
    database_path: str = os.getenv("DATABASE_PATH", "salon_booking.db")

    # Operating window and slot grid used by the availability engine.
    opening_time: str = os.getenv("OPENING_TIME", "07:00")
    closing_time: str = os.getenv("CLOSING_TIME", "19:00")
    slot_step_minutes: int = int(os.getenv("SLOT_STEP_MINUTES", "15"))

    # Share of the operating window that must be booked before a day is
    # reported as fully booked.
    fully_booked_ratio: float = float(os.getenv("FULLY_BOOKED_RATIO", "0.95"))

    # Country prefix used when normalising local phone numbers.
    phone_country_code: str = os.getenv("PHONE_COUNTRY_CODE", "254")

    @property
    def opening(self) -> time:
        return _parse_clock(self.opening_time)

    @property
    def closing(self) -> time:
        return _parse_clock(self.closing_time)


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before this module is imported.
settings = Settings()
