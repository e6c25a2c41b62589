"""
SQLite store handle and schema management.

This module provides the ``Store`` class, the single handle through
which every service reads and writes the salon's bookings, services
and operator accounts, together with the migration system applied each
time a store is opened (``ensure_schema``).

Migrations are additive only.  Every step checks for the table, column
or index it creates before touching the schema, and every step of
every migration is executed on each open; the ``migrations`` table
records which versions have been applied but is never trusted on its
own.  A failing step is logged and skipped so that the final ensure
pass (owner promotion, default catalog) always runs.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from .config import settings
from .errors import DuplicateError, StorageError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 4

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


def get_database_path(path: Optional[str] = None) -> str:
    """Compute the path to the SQLite database file.

    If ``path`` (or ``settings.database_path`` when omitted) is
    absolute, use it directly.  Otherwise resolve it relative to the
    project root.  ``":memory:"`` is passed through untouched.
    """
    db_path = path or settings.database_path
    if db_path == ":memory:" or os.path.isabs(db_path):
        return db_path
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / db_path).resolve())


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive input is returned as is."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def format_timestamp(value: datetime) -> str:
    """Serialise ``value`` as naive local ISO text with second precision.

    Stored timestamps must sort lexically in chronological order, so
    aware datetimes are converted to local time and sub-second
    precision is dropped.
    """
    return to_local_naive(value).strftime(TIMESTAMP_FORMAT)


def day_bounds(day: Union[date, datetime]) -> Tuple[str, str]:
    """Return the stored-text bounds ``[start of day, start of next day)``."""
    if isinstance(day, datetime):
        day = day.date()
    start = datetime(day.year, day.month, day.day)
    return format_timestamp(start), format_timestamp(start + timedelta(days=1))


def month_bounds(year: int, month: int) -> Tuple[str, str]:
    """Return the stored-text bounds ``[first of month, first of next month)``."""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return format_timestamp(start), format_timestamp(end)


# ---------------------------------------------------------------------------
# Migration steps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CreateTable:
    name: str
    ddl: str

    def apply(self, cursor: sqlite3.Cursor) -> bool:
        row = cursor.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (self.name,),
        ).fetchone()
        if row:
            return False
        cursor.execute(self.ddl)
        return True


@dataclass(frozen=True)
class AddColumn:
    table: str
    column: str
    definition: str

    def apply(self, cursor: sqlite3.Cursor) -> bool:
        # SQLite has no "ADD COLUMN IF NOT EXISTS", so check via PRAGMA.
        cols = cursor.execute(f"PRAGMA table_info({self.table})").fetchall()
        if any(col[1] == self.column for col in cols):
            return False
        cursor.execute(f"ALTER TABLE {self.table} ADD COLUMN {self.column} {self.definition}")
        return True


@dataclass(frozen=True)
class CreateIndex:
    name: str
    table: str
    columns: str

    def apply(self, cursor: sqlite3.Cursor) -> bool:
        row = cursor.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'index' AND name = ?",
            (self.name,),
        ).fetchone()
        if row:
            return False
        cursor.execute(f"CREATE INDEX {self.name} ON {self.table}({self.columns})")
        return True


MIGRATIONS: List[Tuple[int, list]] = [
    # Migration 1: bookings with snapshot name/price
    (
        1,
        [
            CreateTable(
                "bookings",
                """
                CREATE TABLE bookings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    client_name TEXT NOT NULL,
                    phone_number TEXT NOT NULL,
                    service_id TEXT NOT NULL,
                    service_name TEXT NOT NULL,
                    price_minor_units INTEGER NOT NULL,
                    appointment_start TEXT NOT NULL
                )
                """,
            ),
        ],
    ),
    # Migration 2: operator accounts
    (
        2,
        [
            CreateTable(
                "accounts",
                """
                CREATE TABLE accounts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    salt TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """,
            ),
        ],
    ),
    # Migration 3: booking status and account roles
    (
        3,
        [
            AddColumn("bookings", "status", "TEXT NOT NULL DEFAULT 'active'"),
            AddColumn("accounts", "role", "TEXT NOT NULL DEFAULT 'viewer'"),
        ],
    ),
    # Migration 4: service catalog and lookup indexes
    (
        4,
        [
            CreateTable(
                "services",
                """
                CREATE TABLE services (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    price_minor_units INTEGER NOT NULL,
                    duration_minutes INTEGER NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1
                )
                """,
            ),
            CreateIndex("idx_bookings_appointment_start", "bookings", "appointment_start"),
            CreateIndex("idx_bookings_phone_number", "bookings", "phone_number"),
        ],
    ),
]

# Seeded into an empty services table on first run:
# (id, name, price in minor units, duration in minutes).
DEFAULT_SERVICES: List[Tuple[str, str, int, int]] = [
    ("gumgell", "Gumgell", 1500, 60),
    ("acrylics", "Acrylics", 2500, 90),
    ("buildergel_tips", "Buildergel + Tips", 1500, 75),
    ("stickons", "Stickons", 1000, 45),
    ("tips", "Tips", 800, 45),
    ("builder", "Builder", 800, 45),
    ("gel_plain", "Gell Plain", 500, 30),
    ("pedicure_gel", "Pedicure + Gell", 1000, 60),
    ("eyebrow_shaping", "Eyebrow Shaping", 100, 15),
    ("eyebrow_tinting", "Eyebrow Tinting", 300, 30),
    ("full_makeup", "Full Make-up", 1000, 60),
]


# ---------------------------------------------------------------------------
# Store handle
# ---------------------------------------------------------------------------


class Store:
    """Handle on one SQLite store file.

    Construct it with a path, ``open()`` it once and inject it into the
    services.  ``open()`` and ``close()`` are both idempotent and the
    store can be used as a context manager::

        with Store("salon.db") as store:
            BookingService(store).list_bookings()
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = get_database_path(path)
        self._conn: Optional[sqlite3.Connection] = None

    # -- lifecycle ---------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "Store":
        if self._conn is not None:
            return self
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            # isolation_level=None: transactions are opened explicitly in
            # ``cursor()``.  check_same_thread=False lets a UI worker thread
            # share the handle; SQLite still serialises writers.
            conn = sqlite3.connect(self.path, timeout=10, isolation_level=None, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open store {self.path}: {exc}") from exc
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA busy_timeout = 5000")
            if self.path != ":memory:":
                conn.execute("PRAGMA journal_mode = WAL")
        except sqlite3.Error as exc:
            conn.close()
            raise StorageError(f"Cannot open store {self.path}: {exc}") from exc
        self._conn = conn
        logger.info("Opened store %s", self.path)
        try:
            ensure_schema(self)
        except Exception:
            logger.error("Schema setup of %s failed, closing", self.path)
            self.close()
            raise
        return self

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.close()
        finally:
            self._conn = None
            logger.info("Closed store %s", self.path)

    def __enter__(self) -> "Store":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- access ------------------------------------------------------------

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Store is not open")
        return self._conn

    @contextmanager
    def cursor(self, immediate: bool = False) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor running inside one transaction.

        The transaction is committed when the block exits normally and
        rolled back otherwise.  ``immediate=True`` takes SQLite's write
        lock up front so that reads made inside the block cannot be
        invalidated by another writer before the block commits.

        SQLite errors are re-raised as ``DuplicateError`` (unique
        constraint) or ``StorageError``; any other exception propagates
        unchanged after the rollback.
        """
        conn = self.connection
        cur = conn.cursor()
        try:
            cur.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        except sqlite3.Error as exc:
            cur.close()
            raise StorageError(str(exc)) from exc
        try:
            yield cur
            cur.execute("COMMIT")
        except sqlite3.IntegrityError as exc:
            self._rollback(cur)
            if "UNIQUE" in str(exc).upper():
                raise DuplicateError(str(exc)) from exc
            raise StorageError(str(exc)) from exc
        except sqlite3.Error as exc:
            self._rollback(cur)
            raise StorageError(str(exc)) from exc
        except BaseException:
            self._rollback(cur)
            raise
        finally:
            cur.close()

    @staticmethod
    def _rollback(cur: sqlite3.Cursor) -> None:
        try:
            cur.execute("ROLLBACK")
        except sqlite3.Error:
            # Nothing to roll back: the failing statement already ended it.
            logger.debug("Rollback skipped, no transaction active")

    # -- maintenance -------------------------------------------------------

    def schema_version(self) -> int:
        with self.cursor() as cur:
            row = cur.execute("SELECT MAX(version) AS version FROM migrations").fetchone()
        return row["version"] if row and row["version"] is not None else 0

    def verify_integrity(self) -> Tuple[bool, str]:
        """Run ``PRAGMA integrity_check`` and report the outcome."""
        try:
            result = self.connection.execute("PRAGMA integrity_check").fetchone()
        except sqlite3.Error as exc:
            logger.error("Integrity check failed: %s", exc, exc_info=True)
            return False, f"Integrity check failed: {exc}"
        if result and result[0] == "ok":
            return True, "Store is intact"
        return False, f"Problems detected: {result[0] if result else 'unknown'}"

    def backup(self, backup_dir: Optional[str] = None) -> Path:
        """Copy the store into ``backup_dir`` using SQLite's backup API.

        Defaults to a ``backups`` directory next to the store file.
        Returns the path of the written backup.
        """
        if backup_dir is None:
            if self.path == ":memory:":
                raise StorageError("In-memory stores need an explicit backup directory")
            backup_dir = str(Path(self.path).parent / "backups")
        target_dir = Path(backup_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"backup_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.db"
        try:
            backup_conn = sqlite3.connect(str(target))
            try:
                self.connection.backup(backup_conn)
            finally:
                backup_conn.close()
        except sqlite3.Error as exc:
            raise StorageError(f"Backup failed: {exc}") from exc
        logger.info("Store backed up to %s", target)
        return target


def open_store(path: Optional[str] = None) -> Store:
    """Open (creating and migrating if needed) the store at ``path``."""
    return Store(path).open()


# ---------------------------------------------------------------------------
# Schema management
# ---------------------------------------------------------------------------


def ensure_schema(store: Store) -> None:
    """Bring the store to the latest schema and backfill defaults.

    Safe to call any number of times.  Each migration runs in its own
    transaction; a failure is logged and the next migration is still
    attempted.  The ensure pass that follows promotes an owner and
    seeds the default catalog, each step in its own transaction.
    """
    with store.cursor() as cursor:
        cursor.execute("CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)")
        applied = {row["version"] for row in cursor.execute("SELECT version FROM migrations").fetchall()}

    for version, steps in MIGRATIONS:
        try:
            with store.cursor(immediate=True) as cursor:
                changed = [step for step in steps if step.apply(cursor)]
                if version not in applied:
                    cursor.execute("INSERT OR IGNORE INTO migrations (version) VALUES (?)", (version,))
            if changed or version not in applied:
                logger.info("Schema migration %s applied (%d change(s))", version, len(changed))
        except Exception as exc:
            logger.warning("Schema migration %s failed, continuing: %s", version, exc, exc_info=True)

    for ensure_step in (_ensure_owner_exists, _seed_default_services):
        try:
            with store.cursor(immediate=True) as cursor:
                ensure_step(cursor)
        except Exception as exc:
            logger.error("Schema ensure step %s failed: %s", ensure_step.__name__, exc, exc_info=True)


def _table_exists(cursor: sqlite3.Cursor, name: str) -> bool:
    return cursor.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
        (name,),
    ).fetchone() is not None


def _ensure_owner_exists(cursor: sqlite3.Cursor) -> None:
    if not _table_exists(cursor, "accounts"):
        return
    owners = cursor.execute("SELECT COUNT(*) AS c FROM accounts WHERE role = 'owner'").fetchone()["c"]
    if owners:
        return
    first = cursor.execute(
        "SELECT id, username FROM accounts ORDER BY created_at ASC, id ASC LIMIT 1"
    ).fetchone()
    if first:
        cursor.execute("UPDATE accounts SET role = 'owner' WHERE id = ?", (first["id"],))
        logger.info("Promoted earliest account %s to owner", first["username"])


def _seed_default_services(cursor: sqlite3.Cursor) -> None:
    if not _table_exists(cursor, "services"):
        return
    count = cursor.execute("SELECT COUNT(*) AS c FROM services").fetchone()["c"]
    if count:
        return
    cursor.executemany(
        "INSERT INTO services (id, name, price_minor_units, duration_minutes, is_active) VALUES (?, ?, ?, ?, 1)",
        DEFAULT_SERVICES,
    )
    logger.info("Default services initialised (%d)", len(DEFAULT_SERVICES))
