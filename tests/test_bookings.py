"""
Tests for the booking service: storage, lookups, cancellation and revenue.

Run with: pytest tests/test_bookings.py -v
"""

from datetime import date, datetime

import pytest

from salon_booking.app.core.errors import NotFoundError, ValidationError
from salon_booking.app.schemas.booking import BookingCreate


# ============================================================================
# STORAGE
# ============================================================================

class TestInsertAndRead:
    """Inserted bookings come back unchanged with an id."""

    def test_insert_assigns_id_and_active_status(self, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 10, 0))
        assert booking.id is not None
        assert booking.status == "active"
        assert booking.is_active

    def test_round_trip_fields(self, engine, make_booking):
        created = make_booking(datetime(2024, 3, 10, 10, 0), client_name="Amina")
        stored = engine.bookings.get(created.id)
        assert stored == created
        assert stored.client_name == "Amina"
        assert stored.appointment_start == datetime(2024, 3, 10, 10, 0)

    def test_phone_normalised_on_insert(self, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 10, 0), phone="0712 345 678")
        assert booking.phone_number == "254712345678"

    def test_empty_phone_rejected(self, make_booking):
        with pytest.raises(ValidationError):
            make_booking(datetime(2024, 3, 10, 10, 0), phone="   ")

    def test_get_unknown_booking(self, engine):
        assert engine.bookings.get(999) is None

    def test_returned_booking_is_a_copy(self, engine, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 10, 0))
        booking.client_name = "Changed locally"
        assert engine.bookings.get(booking.id).client_name == "Jane Wanjiku"

    def test_list_latest_first(self, engine, make_booking):
        early = make_booking(datetime(2024, 3, 10, 9, 0))
        late = make_booking(datetime(2024, 3, 12, 9, 0))
        middle = make_booking(datetime(2024, 3, 11, 9, 0))
        assert [b.id for b in engine.bookings.list_bookings()] == [late.id, middle.id, early.id]

    def test_list_includes_cancelled(self, engine, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 9, 0))
        engine.bookings.cancel(booking.id)
        assert [b.status for b in engine.bookings.list_bookings()] == ["cancelled"]


# ============================================================================
# LOOKUPS
# ============================================================================

class TestLookups:
    """Phone and date lookups."""

    def test_find_by_phone_in_any_format(self, engine, make_booking):
        first = make_booking(datetime(2024, 3, 10, 9, 0), phone="0712345678")
        second = make_booking(datetime(2024, 3, 11, 9, 0), phone="+254 712 345 678")
        make_booking(datetime(2024, 3, 11, 11, 0), phone="0722000000")

        found = engine.bookings.find_by_phone("254712345678")
        assert [b.id for b in found] == [second.id, first.id]

    def test_find_by_phone_empty(self, engine):
        assert engine.bookings.find_by_phone("") == []

    def test_find_for_date_active_only_and_ascending(self, engine, make_booking):
        late = make_booking(datetime(2024, 3, 10, 15, 0))
        early = make_booking(datetime(2024, 3, 10, 9, 0))
        cancelled = make_booking(datetime(2024, 3, 10, 12, 0))
        make_booking(datetime(2024, 3, 11, 0, 0))
        make_booking(datetime(2024, 3, 9, 23, 59))
        engine.bookings.cancel(cancelled.id)

        found = engine.bookings.find_for_date(date(2024, 3, 10))
        assert [b.id for b in found] == [early.id, late.id]

    def test_find_for_date_accepts_datetime(self, engine, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 9, 0))
        found = engine.bookings.find_for_date(datetime(2024, 3, 10, 18, 30))
        assert [b.id for b in found] == [booking.id]


# ============================================================================
# LIFECYCLE
# ============================================================================

class TestLifecycle:
    """Cancel, update and delete."""

    def test_cancel_is_idempotent(self, engine, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 9, 0))
        engine.bookings.cancel(booking.id)
        engine.bookings.cancel(booking.id)
        assert engine.bookings.get(booking.id).status == "cancelled"

    def test_cancel_unknown_booking(self, engine):
        with pytest.raises(NotFoundError):
            engine.bookings.cancel(999)

    def test_update_overwrites_fields(self, engine, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 9, 0))
        changed = booking.model_copy(
            update={"client_name": "Amina", "appointment_start": datetime(2024, 3, 10, 14, 0)}
        )
        updated = engine.bookings.update(changed)
        assert updated.id == booking.id
        assert updated.client_name == "Amina"
        assert engine.bookings.get(booking.id).appointment_start == datetime(2024, 3, 10, 14, 0)

    def test_update_without_id(self, engine, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 9, 0))
        with pytest.raises(NotFoundError):
            engine.bookings.update(booking.model_copy(update={"id": None}))

    def test_update_unknown_id(self, engine, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 9, 0))
        with pytest.raises(NotFoundError):
            engine.bookings.update(booking.model_copy(update={"id": 999}))

    def test_invalid_assignment_rejected(self, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 9, 0))
        with pytest.raises(ValueError):
            booking.status = "done"
        with pytest.raises(ValueError):
            booking.price_minor_units = -5

    def test_update_with_invalid_fields_leaves_store_intact(self, engine, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 9, 0))
        broken = booking.model_copy(update={"status": "done", "price_minor_units": -5})

        with pytest.raises(ValidationError):
            engine.bookings.update(broken)

        stored = engine.bookings.get(booking.id)
        assert (stored.status, stored.price_minor_units) == ("active", 1500)
        assert [b.id for b in engine.bookings.list_bookings()] == [booking.id]
        assert [b.id for b in engine.bookings.find_by_phone(booking.phone_number)] == [booking.id]

    def test_delete(self, engine, make_booking):
        booking = make_booking(datetime(2024, 3, 10, 9, 0))
        engine.bookings.delete(booking.id)
        assert engine.bookings.get(booking.id) is None
        with pytest.raises(NotFoundError):
            engine.bookings.delete(booking.id)


# ============================================================================
# REVENUE
# ============================================================================

class TestRevenue:
    """Monthly revenue over active bookings."""

    def test_cancelled_bookings_excluded(self, engine, make_booking):
        make_booking(datetime(2024, 3, 5, 10, 0), price=1000)
        cancelled = make_booking(datetime(2024, 3, 6, 10, 0), price=500)
        make_booking(datetime(2024, 3, 20, 10, 0), price=500)
        make_booking(datetime(2024, 4, 1, 0, 0), price=700)
        engine.bookings.cancel(cancelled.id)

        assert engine.bookings.revenue(2024, 3) == 1500

    def test_cancelled_price_not_counted(self, engine, make_booking):
        make_booking(datetime(2024, 3, 10, 10, 0), price=1500)
        cancelled = make_booking(datetime(2024, 3, 12, 10, 0), price=2500)
        engine.bookings.cancel(cancelled.id)
        assert engine.bookings.revenue(2024, 3) == 1500

    def test_empty_month_is_zero(self, engine):
        assert engine.bookings.revenue(2024, 2) == 0

    def test_december_includes_last_day_only(self, engine, make_booking):
        make_booking(datetime(2024, 12, 31, 18, 0), price=300)
        make_booking(datetime(2025, 1, 1, 8, 0), price=400)
        assert engine.bookings.revenue(2024, 12) == 300
        assert engine.bookings.revenue(2025, 1) == 400

    @pytest.mark.parametrize("month", [0, 13])
    def test_invalid_month(self, engine, month):
        with pytest.raises(ValidationError):
            engine.bookings.revenue(2024, month)


def test_insert_explicitly_cancelled_booking(engine):
    booking = engine.bookings.insert(
        BookingCreate(
            client_name="Walk-in",
            phone_number="0712345678",
            service_id="tips",
            service_name="Tips",
            price_minor_units=800,
            appointment_start=datetime(2024, 3, 10, 9, 0),
            status="cancelled",
        )
    )
    assert booking.status == "cancelled"
    assert engine.bookings.find_for_date(date(2024, 3, 10)) == []
