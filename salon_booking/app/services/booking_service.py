"""
Business logic for salon bookings.

The ``BookingService`` stores, lists, amends, cancels and deletes
bookings and computes monthly revenue.  A booking moves from ``active``
to ``cancelled`` and never back; cancelled bookings stay in the store
but are ignored by revenue, availability and statistics.

``insert`` does not look at the calendar.  The booking flow goes
through ``AvailabilityService.reserve``, which checks for conflicts and
inserts in a single transaction.
"""

import logging
import sqlite3
from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from salon_booking.app.core.config import Settings, settings as default_settings
from salon_booking.app.core.db import Store, day_bounds, format_timestamp, month_bounds
from salon_booking.app.core.errors import NotFoundError, ValidationError
from salon_booking.app.core.phone import normalize_phone
from salon_booking.app.schemas.booking import ACTIVE, CANCELLED, Booking, BookingCreate

_COLUMNS = (
    "id, client_name, phone_number, service_id, service_name, "
    "price_minor_units, appointment_start, status"
)


def _row_to_booking(row) -> Booking:
    return Booking(
        id=row["id"],
        client_name=row["client_name"],
        phone_number=row["phone_number"],
        service_id=row["service_id"],
        service_name=row["service_name"],
        price_minor_units=row["price_minor_units"],
        appointment_start=datetime.fromisoformat(row["appointment_start"]),
        status=row["status"] or ACTIVE,
    )


class BookingService:
    """Service for managing bookings."""

    def __init__(self, store: Store, settings: Optional[Settings] = None) -> None:
        self.store = store
        self.settings = settings or default_settings

    # -- helpers -------------------------------------------------------------

    def normalize_phone(self, phone: str) -> str:
        """Return the canonical form of ``phone``; empty input is rejected."""
        normalized = normalize_phone(phone, self.settings.phone_country_code)
        if not normalized:
            raise ValidationError("Phone number is required")
        return normalized

    def insert_row(self, cursor: sqlite3.Cursor, data: BookingCreate) -> Booking:
        """Insert ``data`` using an already open transaction.

        Used by ``insert`` and by callers that need the insert to share
        a transaction with their own reads.
        """
        phone = self.normalize_phone(data.phone_number)
        cursor.execute(
            """
            INSERT INTO bookings (client_name, phone_number, service_id, service_name,
                                  price_minor_units, appointment_start, status)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                data.client_name,
                phone,
                data.service_id,
                data.service_name,
                data.price_minor_units,
                format_timestamp(data.appointment_start),
                data.status,
            ),
        )
        booking_id = cursor.lastrowid
        row = cursor.execute(f"SELECT {_COLUMNS} FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return _row_to_booking(row)

    # -- commands ------------------------------------------------------------

    def insert(self, data: BookingCreate) -> Booking:
        """Store a new booking and return the stored copy with its id."""
        logger = logging.getLogger(__name__)
        logger.debug("Inserting booking for %s (%s)", data.client_name, data.service_name)
        with self.store.cursor() as cursor:
            booking = self.insert_row(cursor, data)
        logger.info("Booking inserted with id %s", booking.id)
        return booking

    def cancel(self, booking_id: int) -> None:
        """Mark a booking as cancelled.

        Cancelling an already cancelled booking does nothing.  Raises
        ``NotFoundError`` when the id does not exist.
        """
        logger = logging.getLogger(__name__)
        with self.store.cursor() as cursor:
            row = cursor.execute("SELECT status FROM bookings WHERE id = ?", (booking_id,)).fetchone()
            if not row:
                logger.warning("No booking found with id %s", booking_id)
                raise NotFoundError(f"Booking {booking_id} not found")
            if row["status"] == CANCELLED:
                logger.debug("Booking %s already cancelled", booking_id)
                return
            cursor.execute("UPDATE bookings SET status = ? WHERE id = ?", (CANCELLED, booking_id))
        logger.info("Booking %s cancelled", booking_id)

    def update(self, booking: Booking) -> Booking:
        """Overwrite every field of the stored booking with ``booking``.

        The id is kept.  Raises ``NotFoundError`` when ``booking.id`` is
        ``None`` or no longer exists.  The fields are validated again before
        anything is written, since ``model_copy(update=...)`` skips
        validation; bad values raise ``ValidationError``.
        """
        logger = logging.getLogger(__name__)
        if booking.id is None:
            raise NotFoundError("Booking id is required for update")
        try:
            booking = Booking.model_validate(booking.model_dump())
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid booking {booking.id}: {exc}") from exc
        phone = self.normalize_phone(booking.phone_number)
        with self.store.cursor() as cursor:
            cursor.execute(
                """
                UPDATE bookings
                SET client_name = ?, phone_number = ?, service_id = ?, service_name = ?,
                    price_minor_units = ?, appointment_start = ?, status = ?
                WHERE id = ?
                """,
                (
                    booking.client_name,
                    phone,
                    booking.service_id,
                    booking.service_name,
                    booking.price_minor_units,
                    format_timestamp(booking.appointment_start),
                    booking.status,
                    booking.id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Booking {booking.id} not found")
            row = cursor.execute(f"SELECT {_COLUMNS} FROM bookings WHERE id = ?", (booking.id,)).fetchone()
            updated = _row_to_booking(row)
        logger.info("Booking %s updated", booking.id)
        return updated

    def delete(self, booking_id: int) -> None:
        """Permanently remove a booking.  Raises ``NotFoundError`` when missing."""
        logger = logging.getLogger(__name__)
        with self.store.cursor() as cursor:
            cursor.execute("DELETE FROM bookings WHERE id = ?", (booking_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Booking {booking_id} not found")
        logger.info("Booking %s deleted", booking_id)

    # -- queries -------------------------------------------------------------

    def get(self, booking_id: int, cursor: Optional[sqlite3.Cursor] = None) -> Optional[Booking]:
        query = f"SELECT {_COLUMNS} FROM bookings WHERE id = ?"
        if cursor is not None:
            row = cursor.execute(query, (booking_id,)).fetchone()
        else:
            with self.store.cursor() as own_cursor:
                row = own_cursor.execute(query, (booking_id,)).fetchone()
        return _row_to_booking(row) if row else None

    def list_bookings(self) -> List[Booking]:
        """Return every booking, latest appointment first."""
        with self.store.cursor() as cursor:
            rows = cursor.execute(
                f"SELECT {_COLUMNS} FROM bookings ORDER BY appointment_start DESC, id DESC"
            ).fetchall()
        return [_row_to_booking(row) for row in rows]

    def find_by_phone(self, phone: str) -> List[Booking]:
        """Return the bookings made with ``phone``, latest appointment first."""
        normalized = normalize_phone(phone, self.settings.phone_country_code)
        if not normalized:
            return []
        with self.store.cursor() as cursor:
            rows = cursor.execute(
                f"SELECT {_COLUMNS} FROM bookings WHERE phone_number = ? "
                "ORDER BY appointment_start DESC, id DESC",
                (normalized,),
            ).fetchall()
        return [_row_to_booking(row) for row in rows]

    def find_for_date(self, day: Union[date, datetime], cursor: Optional[sqlite3.Cursor] = None) -> List[Booking]:
        """Return the active bookings starting on ``day``, earliest first.

        Pass ``cursor`` to read inside a transaction the caller already
        holds.
        """
        start, end = day_bounds(day)
        query = (
            f"SELECT {_COLUMNS} FROM bookings "
            "WHERE status = ? AND appointment_start >= ? AND appointment_start < ? "
            "ORDER BY appointment_start ASC, id ASC"
        )
        params = (ACTIVE, start, end)
        if cursor is not None:
            rows = cursor.execute(query, params).fetchall()
        else:
            with self.store.cursor() as own_cursor:
                rows = own_cursor.execute(query, params).fetchall()
        return [_row_to_booking(row) for row in rows]

    def revenue(self, year: int, month: int) -> int:
        """Sum the prices of active bookings in the given month.

        Cancelled bookings are excluded and a month without bookings
        yields 0.
        """
        if not 1 <= month <= 12:
            raise ValidationError(f"Month must be between 1 and 12, got {month}")
        start, end = month_bounds(year, month)
        with self.store.cursor() as cursor:
            row = cursor.execute(
                "SELECT COALESCE(SUM(price_minor_units), 0) AS total FROM bookings "
                "WHERE status = ? AND appointment_start >= ? AND appointment_start < ?",
                (ACTIVE, start, end),
            ).fetchone()
        return int(row["total"])
