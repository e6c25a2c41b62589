"""
Service layer for the salon's service catalog.

Services are never hard-deleted: historical bookings keep referring to
them by id, so ``delete_service`` only clears the ``is_active`` flag.
Listings show active services by default while ``get_by_id`` resolves
any id ever created.
"""

import logging
import sqlite3
from typing import List, Optional

from salon_booking.app.core.db import Store
from salon_booking.app.core.errors import DuplicateError, NotFoundError
from salon_booking.app.schemas.service import Service, ServiceCreate, ServiceUpdate

_COLUMNS = "id, name, price_minor_units, duration_minutes, is_active"


def _row_to_service(row) -> Service:
    return Service(
        id=row["id"],
        name=row["name"],
        price_minor_units=row["price_minor_units"],
        duration_minutes=row["duration_minutes"],
        active=bool(row["is_active"]),
    )


class CatalogService:
    """Service for creating, reading, updating and retiring services."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def list_services(self, include_inactive: bool = False) -> List[Service]:
        query = f"SELECT {_COLUMNS} FROM services"
        if not include_inactive:
            query += " WHERE is_active = 1"
        query += " ORDER BY name ASC"
        with self.store.cursor() as cursor:
            rows = cursor.execute(query).fetchall()
        return [_row_to_service(row) for row in rows]

    def get_by_id(self, service_id: str, cursor: Optional[sqlite3.Cursor] = None) -> Optional[Service]:
        """Return the service with ``service_id`` whether active or not.

        Pass ``cursor`` to read inside a transaction the caller already
        holds.
        """
        query = f"SELECT {_COLUMNS} FROM services WHERE id = ?"
        if cursor is not None:
            row = cursor.execute(query, (service_id,)).fetchone()
        else:
            with self.store.cursor() as own_cursor:
                row = own_cursor.execute(query, (service_id,)).fetchone()
        return _row_to_service(row) if row else None

    def resolve_duration(self, service_id: str) -> Optional[int]:
        """Return the current duration of ``service_id`` or ``None``.

        ``None`` means the id no longer resolves; callers decide what an
        unresolvable service means for them.
        """
        service = self.get_by_id(service_id)
        return service.duration_minutes if service else None

    def create_service(self, data: ServiceCreate) -> Service:
        logger = logging.getLogger(__name__)
        try:
            with self.store.cursor() as cursor:
                cursor.execute(
                    "INSERT INTO services (id, name, price_minor_units, duration_minutes, is_active) "
                    "VALUES (?, ?, ?, ?, 1)",
                    (data.id, data.name, data.price_minor_units, data.duration_minutes),
                )
        except DuplicateError:
            logger.warning("Service id already exists: %s", data.id)
            raise DuplicateError(f"Service {data.id!r} already exists") from None
        logger.info("Service %s added", data.id)
        return Service(
            id=data.id,
            name=data.name,
            price_minor_units=data.price_minor_units,
            duration_minutes=data.duration_minutes,
            active=True,
        )

    def update_service(self, service_id: str, data: ServiceUpdate) -> Service:
        """Apply the provided fields of ``data`` and return the result.

        Raises ``NotFoundError`` when no service has ``service_id``.
        Existing bookings are unaffected: their name and price are
        snapshots.
        """
        logger = logging.getLogger(__name__)
        updates = []
        values: list = []
        if data.name is not None:
            updates.append("name = ?")
            values.append(data.name)
        if data.price_minor_units is not None:
            updates.append("price_minor_units = ?")
            values.append(data.price_minor_units)
        if data.duration_minutes is not None:
            updates.append("duration_minutes = ?")
            values.append(data.duration_minutes)
        if data.active is not None:
            updates.append("is_active = ?")
            values.append(1 if data.active else 0)

        with self.store.cursor() as cursor:
            row = cursor.execute("SELECT id FROM services WHERE id = ?", (service_id,)).fetchone()
            if not row:
                raise NotFoundError(f"Service {service_id} not found")
            if updates:
                values.append(service_id)
                cursor.execute(f"UPDATE services SET {', '.join(updates)} WHERE id = ?", tuple(values))
            updated = cursor.execute(
                f"SELECT {_COLUMNS} FROM services WHERE id = ?",
                (service_id,),
            ).fetchone()
        if updates:
            logger.info("Service %s updated", service_id)
        return _row_to_service(updated)

    def delete_service(self, service_id: str) -> None:
        """Deactivate a service.  Raises ``NotFoundError`` when missing."""
        logger = logging.getLogger(__name__)
        with self.store.cursor() as cursor:
            cursor.execute("UPDATE services SET is_active = 0 WHERE id = ?", (service_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Service {service_id} not found")
        logger.info("Service %s deactivated", service_id)
