"""
Pytest configuration and fixtures.

Every test gets its own store file under pytest's ``tmp_path`` so no
state leaks between tests.  Settings are constructed explicitly rather
than read from the environment.
"""
from datetime import datetime

import pytest

from salon_booking.app.core.config import Settings
from salon_booking.app.core.db import Store
from salon_booking.app.main import BookingEngine
from salon_booking.app.schemas.booking import BookingCreate
from salon_booking.app.schemas.service import ServiceCreate


@pytest.fixture
def settings():
    """Salon defaults: 07:00-19:00, 15-minute grid, 95% fully booked."""
    return Settings(
        opening_time="07:00",
        closing_time="19:00",
        slot_step_minutes=15,
        fully_booked_ratio=0.95,
        phone_country_code="254",
    )


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "salon.db")


@pytest.fixture
def store(db_path):
    """Open, migrated store closed after the test."""
    store = Store(db_path).open()
    yield store
    store.close()


@pytest.fixture
def engine(store, settings):
    return BookingEngine(store, settings)


@pytest.fixture
def cut(engine):
    """A one-hour haircut priced 1500."""
    return engine.catalog.create_service(
        ServiceCreate(id="cut", name="Haircut", price_minor_units=1500, duration_minutes=60)
    )


@pytest.fixture
def make_booking(engine):
    """Factory inserting an active booking for an existing or made-up service."""

    def _make(
        start: datetime,
        service_id: str = "cut",
        service_name: str = "Haircut",
        price: int = 1500,
        client_name: str = "Jane Wanjiku",
        phone: str = "254712345678",
    ):
        return engine.bookings.insert(
            BookingCreate(
                client_name=client_name,
                phone_number=phone,
                service_id=service_id,
                service_name=service_name,
                price_minor_units=price,
                appointment_start=start,
            )
        )

    return _make
