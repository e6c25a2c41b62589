"""
Tests for the service catalog.

Run with: pytest tests/test_catalog.py -v
"""

from datetime import datetime

import pytest

from salon_booking.app.core.db import DEFAULT_SERVICES
from salon_booking.app.core.errors import DuplicateError, NotFoundError
from salon_booking.app.schemas.service import ServiceCreate, ServiceUpdate


class TestCatalog:
    """Listing, adding, editing and retiring services."""

    def test_default_catalog_listed_by_name(self, engine):
        services = engine.catalog.list_services()
        assert len(services) == len(DEFAULT_SERVICES)
        names = [s.name for s in services]
        assert names == sorted(names)

    def test_default_durations_resolve(self, engine):
        assert engine.catalog.resolve_duration("gumgell") == 60
        assert engine.catalog.resolve_duration("acrylics") == 90

    def test_create_and_get(self, engine, cut):
        assert cut.active is True
        fetched = engine.catalog.get_by_id("cut")
        assert fetched == cut

    def test_create_duplicate_rejected(self, engine, cut):
        with pytest.raises(DuplicateError):
            engine.catalog.create_service(
                ServiceCreate(id="cut", name="Other", price_minor_units=100, duration_minutes=15)
            )

    @pytest.mark.parametrize("service_id", ["Bad Id", "", "-cut"])
    def test_malformed_id_rejected(self, service_id):
        with pytest.raises(ValueError):
            ServiceCreate(id=service_id, name="Cut", price_minor_units=100, duration_minutes=15)

    def test_non_positive_duration_rejected(self):
        with pytest.raises(ValueError):
            ServiceCreate(id="cut", name="Cut", price_minor_units=100, duration_minutes=0)

    def test_partial_update(self, engine, cut):
        updated = engine.catalog.update_service("cut", ServiceUpdate(price_minor_units=2000))
        assert updated.price_minor_units == 2000
        assert updated.name == "Haircut"
        assert updated.duration_minutes == 60

    def test_update_missing_service(self, engine):
        with pytest.raises(NotFoundError):
            engine.catalog.update_service("ghost", ServiceUpdate(name="Ghost"))

    def test_soft_delete_hides_but_resolves(self, engine, cut):
        engine.catalog.delete_service("cut")
        assert "cut" not in {s.id for s in engine.catalog.list_services()}
        assert "cut" in {s.id for s in engine.catalog.list_services(include_inactive=True)}
        retired = engine.catalog.get_by_id("cut")
        assert retired is not None and retired.active is False
        assert engine.catalog.resolve_duration("cut") == 60

    def test_delete_missing_service(self, engine):
        with pytest.raises(NotFoundError):
            engine.catalog.delete_service("ghost")

    def test_reactivate(self, engine, cut):
        engine.catalog.delete_service("cut")
        engine.catalog.update_service("cut", ServiceUpdate(active=True))
        assert "cut" in {s.id for s in engine.catalog.list_services()}

    def test_unknown_service_has_no_duration(self, engine):
        assert engine.catalog.get_by_id("ghost") is None
        assert engine.catalog.resolve_duration("ghost") is None

    def test_price_change_leaves_bookings_untouched(self, engine, cut, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 10, 0))
        engine.catalog.update_service("cut", ServiceUpdate(name="Deluxe cut", price_minor_units=9999))

        stored = engine.bookings.get(booking.id)
        assert stored.service_name == "Haircut"
        assert stored.price_minor_units == 1500
