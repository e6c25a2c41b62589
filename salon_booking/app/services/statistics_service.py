"""
Service layer for statistics and reporting.

This module provides the aggregated figures shown on the owner's
dashboard: booking counts, revenue, the busiest hours of the day and
the most popular services.  Only ``active`` bookings are counted.

Statistics are informational, so every method fails soft: a storage
error is logged and an empty or zero result is returned instead of
propagating.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from salon_booking.app.core.db import Store
from salon_booking.app.schemas.booking import ACTIVE, CANCELLED
from salon_booking.app.schemas.statistics import PopularService

logger = logging.getLogger(__name__)


class StatisticsService:
    """Service providing aggregated booking statistics."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def _scalar(self, sql: str, params: tuple = ()) -> int:
        with self.store.cursor() as cursor:
            value = cursor.execute(sql, params).fetchone()[0]
        return int(value or 0)

    def total_bookings(self) -> int:
        try:
            return self._scalar("SELECT COUNT(*) FROM bookings WHERE status = ?", (ACTIVE,))
        except Exception as exc:
            logger.error("Error getting total bookings: %s", exc, exc_info=True)
            return 0

    def total_revenue(self) -> int:
        try:
            return self._scalar(
                "SELECT COALESCE(SUM(price_minor_units), 0) FROM bookings WHERE status = ?",
                (ACTIVE,),
            )
        except Exception as exc:
            logger.error("Error getting total revenue: %s", exc, exc_info=True)
            return 0

    def peak_hours(self, limit: int = 5) -> Dict[int, int]:
        """Return ``{hour_of_day: booking_count}`` for the busiest hours.

        Ordered by count descending; hours with equal counts are ordered
        earliest first.
        """
        try:
            with self.store.cursor() as cursor:
                rows = cursor.execute(
                    """
                    SELECT CAST(strftime('%H', appointment_start) AS INTEGER) AS hour,
                           COUNT(*) AS count
                    FROM bookings
                    WHERE status = ?
                    GROUP BY hour
                    ORDER BY count DESC, hour ASC
                    LIMIT ?
                    """,
                    (ACTIVE, limit),
                ).fetchall()
        except Exception as exc:
            logger.error("Error getting peak hours: %s", exc, exc_info=True)
            return {}
        return {row["hour"]: row["count"] for row in rows if row["hour"] is not None}

    def most_popular_services(self, limit: int = 5) -> List[PopularService]:
        """Return the most booked services with their booking revenue.

        Grouped by service id; the name reported is the most recent
        snapshot among the grouped bookings.
        """
        try:
            with self.store.cursor() as cursor:
                rows = cursor.execute(
                    """
                    SELECT b.service_id AS service_id,
                           (SELECT service_name FROM bookings n
                            WHERE n.service_id = b.service_id AND n.status = ?
                            ORDER BY n.id DESC LIMIT 1) AS service_name,
                           COUNT(*) AS booking_count,
                           COALESCE(SUM(b.price_minor_units), 0) AS total_revenue
                    FROM bookings b
                    WHERE b.status = ?
                    GROUP BY b.service_id
                    ORDER BY booking_count DESC, b.service_id ASC
                    LIMIT ?
                    """,
                    (ACTIVE, ACTIVE, limit),
                ).fetchall()
        except Exception as exc:
            logger.error("Error getting popular services: %s", exc, exc_info=True)
            return []
        return [
            PopularService(
                service_id=row["service_id"],
                service_name=row["service_name"],
                booking_count=row["booking_count"],
                total_revenue=row["total_revenue"],
            )
            for row in rows
        ]

    def overview(self) -> Dict[str, int]:
        """Return a dictionary with high‑level store metrics."""
        try:
            return {
                "active_bookings": self._scalar("SELECT COUNT(*) FROM bookings WHERE status = ?", (ACTIVE,)),
                "cancelled_bookings": self._scalar(
                    "SELECT COUNT(*) FROM bookings WHERE status = ?", (CANCELLED,)
                ),
                "total_revenue": self.total_revenue(),
                "active_services": self._scalar("SELECT COUNT(*) FROM services WHERE is_active = 1"),
                "accounts": self._scalar("SELECT COUNT(*) FROM accounts"),
            }
        except Exception as exc:
            logger.error("Error building statistics overview: %s", exc, exc_info=True)
            return {}
