"""
Availability engine: conflict detection and the daily slot grid.

All answers are computed from the bookings and the catalog on every
call; nothing is cached or persisted here.  A booking occupies the
half-open interval ``[start, start + duration)`` where ``duration`` is
the *current* duration of its service.  Two intervals overlap iff each
starts before the other ends, so a booking ending at 11:00 never
conflicts with one starting at 11:00.

Bookings whose service id no longer resolves are skipped: their name
and price were snapshotted but their duration was not, so there is no
interval to block.

Error policy: ``has_conflict`` reports a conflict when anything goes
wrong (better to refuse a slot than double-book it); the read-only
grid helpers log the failure and return an empty answer.
"""

import calendar
import logging
import sqlite3
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from salon_booking.app.core.config import Settings, settings as default_settings
from salon_booking.app.core.db import Store, format_timestamp, to_local_naive
from salon_booking.app.core.errors import NotFoundError, SlotUnavailableError, ValidationError
from salon_booking.app.schemas.booking import Booking, BookingCreate, BookingInterval
from salon_booking.app.services.booking_service import BookingService
from salon_booking.app.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

DurationResolver = Callable[[str], Optional[int]]


def intervals_overlap(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open interval overlap: touching intervals do not overlap."""
    return start < other_end and end > other_start


class AvailabilityService:
    """Answers "is this slot free?" and "which slots are free today?"."""

    def __init__(
        self,
        store: Store,
        bookings: Optional[BookingService] = None,
        catalog: Optional[CatalogService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.settings = settings or default_settings
        self.bookings = bookings or BookingService(store, self.settings)
        self.catalog = catalog or CatalogService(store)
        if self.settings.slot_step_minutes <= 0:
            raise ValidationError("Slot step must be a positive number of minutes")
        if self.settings.closing <= self.settings.opening:
            raise ValidationError("Closing time must be after opening time")

    # -- operating window ------------------------------------------------------

    @property
    def step(self) -> timedelta:
        return timedelta(minutes=self.settings.slot_step_minutes)

    def opening_hours(self, day: Union[date, datetime]) -> Tuple[datetime, datetime]:
        """Return the opening and closing datetimes of ``day``."""
        if isinstance(day, datetime):
            day = day.date()
        return (
            datetime.combine(day, self.settings.opening),
            datetime.combine(day, self.settings.closing),
        )

    def _resolver(self, cursor: Optional[sqlite3.Cursor] = None) -> DurationResolver:
        """Return a per-call memoised ``service_id -> duration`` lookup."""
        cache: Dict[str, Optional[int]] = {}

        def resolve(service_id: str) -> Optional[int]:
            if service_id not in cache:
                service = self.catalog.get_by_id(service_id, cursor=cursor)
                cache[service_id] = service.duration_minutes if service else None
            return cache[service_id]

        return resolve

    @staticmethod
    def _blocked_intervals(
        bookings: Iterable[Booking],
        resolve: DurationResolver,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Tuple[datetime, datetime, Booking]]:
        intervals = []
        for booking in bookings:
            if exclude_booking_id is not None and booking.id == exclude_booking_id:
                continue
            duration = resolve(booking.service_id)
            if duration is None:
                logger.debug("Booking %s references unknown service %s, skipped", booking.id, booking.service_id)
                continue
            start = booking.appointment_start
            intervals.append((start, start + timedelta(minutes=duration), booking))
        return intervals

    @staticmethod
    def _check_duration(duration_minutes: int) -> None:
        if duration_minutes is None or duration_minutes <= 0:
            raise ValidationError("Duration must be a positive number of minutes")

    def _first_conflict(
        self,
        start: datetime,
        duration_minutes: int,
        bookings: Iterable[Booking],
        resolve: DurationResolver,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[Booking]:
        end = start + timedelta(minutes=duration_minutes)
        for b_start, b_end, booking in self._blocked_intervals(bookings, resolve, exclude_booking_id):
            if intervals_overlap(start, end, b_start, b_end):
                return booking
        return None

    # -- queries ---------------------------------------------------------------

    def has_conflict(
        self,
        start: datetime,
        duration_minutes: int,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        """Return whether ``[start, start + duration)`` overlaps an active booking.

        ``exclude_booking_id`` ignores one booking, so that a booking
        being moved does not conflict with itself.  Any failure while
        checking is reported as a conflict.
        """
        self._check_duration(duration_minutes)
        start = to_local_naive(start)
        try:
            bookings = self.bookings.find_for_date(start)
            clash = self._first_conflict(start, duration_minutes, bookings, self._resolver(), exclude_booking_id)
        except Exception as exc:
            logger.error("Error checking booking conflict at %s, assuming conflict: %s", start, exc, exc_info=True)
            return True
        if clash is not None:
            logger.debug("Booking conflict detected: %s overlaps booking %s", start, clash.id)
            return True
        return False

    def slot_availability(self, day: Union[date, datetime], duration_minutes: int) -> Dict[datetime, bool]:
        """Return the slot grid of ``day`` for a service lasting ``duration_minutes``.

        Every step-sized tick inside an existing booking is ``False``.
        A candidate start ``t`` between opening and closing is ``True``
        when ``[t, t + duration)`` ends by closing time, overlaps no
        booking and ``t`` is not already marked ``False``.  Candidates
        that do not fit before closing are left out.  The mapping is
        ordered by time.
        """
        self._check_duration(duration_minutes)
        try:
            opening, closing = self.opening_hours(day)
            step = self.step
            duration = timedelta(minutes=duration_minutes)
            availability: Dict[datetime, bool] = {}

            blocked = self._blocked_intervals(self.bookings.find_for_date(day), self._resolver())
            for b_start, b_end, _ in blocked:
                tick = b_start
                while tick < b_end:
                    availability[tick] = False
                    tick += step

            current = opening
            while current < closing:
                slot_end = current + duration
                if slot_end <= closing and current not in availability:
                    if not any(intervals_overlap(current, slot_end, b_start, b_end) for b_start, b_end, _ in blocked):
                        availability[current] = True
                current += step

            return dict(sorted(availability.items()))
        except Exception as exc:
            logger.error("Error getting time slot availability for %s: %s", day, exc, exc_info=True)
            return {}

    def is_date_fully_booked(self, day: Union[date, datetime]) -> bool:
        """Return whether booked minutes reach the fully-booked share of the day.

        A heuristic: durations are summed without checking how they tile
        the day.  Failures report the day as not fully booked.
        """
        try:
            opening, closing = self.opening_hours(day)
            total_minutes = (closing - opening).total_seconds() / 60
            resolve = self._resolver()
            booked_minutes = 0
            for booking in self.bookings.find_for_date(day):
                duration = resolve(booking.service_id)
                if duration is not None:
                    booked_minutes += duration
            return booked_minutes >= total_minutes * self.settings.fully_booked_ratio
        except Exception as exc:
            logger.error("Error checking if %s is fully booked: %s", day, exc, exc_info=True)
            return False

    def fully_booked_dates(self, year: int, month: int) -> Set[date]:
        """Return every day of ``year``/``month`` that is fully booked."""
        if not 1 <= month <= 12:
            raise ValidationError(f"Month must be between 1 and 12, got {month}")
        _, days_in_month = calendar.monthrange(year, month)
        return {
            date(year, month, day)
            for day in range(1, days_in_month + 1)
            if self.is_date_fully_booked(date(year, month, day))
        }

    def booking_interval(self, booking: Booking) -> BookingInterval:
        """Return ``booking`` with its resolved end time."""
        duration = self.catalog.resolve_duration(booking.service_id)
        start = booking.appointment_start
        if duration is None:
            return BookingInterval(booking=booking, start=start, end=start, duration_minutes=0)
        return BookingInterval(
            booking=booking,
            start=start,
            end=start + timedelta(minutes=duration),
            duration_minutes=duration,
        )

    def intervals_for_date(self, day: Union[date, datetime]) -> List[BookingInterval]:
        """Return the active bookings of ``day`` with their end times."""
        return [self.booking_interval(booking) for booking in self.bookings.find_for_date(day)]

    # -- commands --------------------------------------------------------------

    def _check_within_hours(self, start: datetime, duration_minutes: int) -> None:
        opening, closing = self.opening_hours(start)
        if start < opening or start + timedelta(minutes=duration_minutes) > closing:
            raise ValidationError(
                f"Appointment at {start:%Y-%m-%d %H:%M} for {duration_minutes} minutes "
                f"is outside opening hours {self.settings.opening_time}-{self.settings.closing_time}"
            )

    def reserve(self, client_name: str, phone_number: str, service_id: str, start: datetime) -> Booking:
        """Book ``service_id`` at ``start`` if the slot is free.

        The conflict check and the insert share one write transaction,
        so two simultaneous attempts for the same slot cannot both
        succeed.  The service name and price are copied onto the
        booking.

        Raises ``NotFoundError`` for an unknown service,
        ``ValidationError`` for an inactive service or a slot outside
        opening hours, and ``SlotUnavailableError`` on overlap.
        """
        start = to_local_naive(start)
        with self.store.cursor(immediate=True) as cursor:
            service = self.catalog.get_by_id(service_id, cursor=cursor)
            if service is None:
                raise NotFoundError(f"Service {service_id} not found")
            if not service.active:
                raise ValidationError(f"Service {service_id} is no longer offered")
            self._check_within_hours(start, service.duration_minutes)

            existing = self.bookings.find_for_date(start, cursor=cursor)
            clash = self._first_conflict(start, service.duration_minutes, existing, self._resolver(cursor))
            if clash is not None:
                logger.info("Slot %s for %s taken by booking %s", start, service_id, clash.id)
                raise SlotUnavailableError(f"The slot at {start:%Y-%m-%d %H:%M} is no longer available")

            booking = self.bookings.insert_row(
                cursor,
                BookingCreate(
                    client_name=client_name,
                    phone_number=phone_number,
                    service_id=service.id,
                    service_name=service.name,
                    price_minor_units=service.price_minor_units,
                    appointment_start=start,
                ),
            )
        logger.info("Reserved %s at %s as booking %s", service_id, start, booking.id)
        return booking

    def reschedule(self, booking_id: int, new_start: datetime) -> Booking:
        """Move an active booking to ``new_start`` if that slot is free.

        The booking does not conflict with itself.  Raises
        ``NotFoundError`` when the booking or its service is missing,
        ``ValidationError`` for a cancelled booking or a slot outside
        opening hours, and ``SlotUnavailableError`` on overlap.
        """
        new_start = to_local_naive(new_start)
        with self.store.cursor(immediate=True) as cursor:
            booking = self.bookings.get(booking_id, cursor=cursor)
            if booking is None:
                raise NotFoundError(f"Booking {booking_id} not found")
            if not booking.is_active:
                raise ValidationError(f"Booking {booking_id} is cancelled")
            resolve = self._resolver(cursor)
            duration = resolve(booking.service_id)
            if duration is None:
                raise NotFoundError(f"Service {booking.service_id} not found")
            self._check_within_hours(new_start, duration)

            existing = self.bookings.find_for_date(new_start, cursor=cursor)
            clash = self._first_conflict(new_start, duration, existing, resolve, exclude_booking_id=booking_id)
            if clash is not None:
                raise SlotUnavailableError(f"The slot at {new_start:%Y-%m-%d %H:%M} is no longer available")

            cursor.execute(
                "UPDATE bookings SET appointment_start = ? WHERE id = ?",
                (format_timestamp(new_start), booking_id),
            )
            moved = self.bookings.get(booking_id, cursor=cursor)
        logger.info("Booking %s moved to %s", booking_id, new_start)
        return moved
