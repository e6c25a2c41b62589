"""
Business logic for operator accounts.

The ``AccountService`` creates accounts, verifies logins and reports
roles.  The very first account becomes the salon ``owner``; everyone
added afterwards is a ``viewer``.  Passwords are stored as a salted
SHA‑256 digest (see ``core.security``).
"""

import logging
from datetime import datetime
from typing import List, Optional

from salon_booking.app.core.db import Store, format_timestamp
from salon_booking.app.core.errors import DuplicateError, IntegrityError, ValidationError
from salon_booking.app.core.security import generate_salt, hash_password, verify_password
from salon_booking.app.schemas.account import OWNER, VIEWER, Account

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 4

_COLUMNS = "id, username, password_hash, salt, created_at, role"


class AccountService:
    """Service for operator account lifecycle and authentication."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def create_account(self, username: str, password: str) -> Account:
        """Create a new account and return it.

        The username is trimmed before any check.  Raises
        ``ValidationError`` for a username shorter than 3 characters or
        a password shorter than 4, and ``DuplicateError`` when the
        username is taken.  The role is decided and the row inserted in
        one write transaction, so two concurrent first-run setups cannot
        both become owner.
        """
        logger = logging.getLogger(__name__)
        trimmed = (username or "").strip()
        if len(trimmed) < MIN_USERNAME_LENGTH:
            raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
        if password is None or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        salt = generate_salt()
        password_hash = hash_password(password, salt)
        created_at = format_timestamp(datetime.now())

        with self.store.cursor(immediate=True) as cursor:
            exists = cursor.execute(
                "SELECT 1 FROM accounts WHERE username = ?",
                (trimmed,),
            ).fetchone()
            if exists:
                logger.warning("Username already exists: %s", trimmed)
                raise DuplicateError(f"Username {trimmed!r} already exists")
            owners = cursor.execute(
                "SELECT COUNT(*) AS c FROM accounts WHERE role = ?",
                (OWNER,),
            ).fetchone()["c"]
            role = OWNER if owners == 0 else VIEWER
            cursor.execute(
                "INSERT INTO accounts (username, password_hash, salt, created_at, role) VALUES (?, ?, ?, ?, ?)",
                (trimmed, password_hash, salt, created_at, role),
            )
            account_id = cursor.lastrowid
        logger.info("Account %s created with id %s as %s", trimmed, account_id, role)

        account = self.get_account(trimmed)
        if account is None:
            raise IntegrityError(f"Account {trimmed!r} was written but cannot be read back")
        return account

    def verify_login(self, username: str, password: str) -> bool:
        """Return whether ``password`` matches the stored credentials.

        Never raises: unknown usernames, malformed stored credentials
        and storage failures all yield ``False``.
        """
        logger = logging.getLogger(__name__)
        try:
            with self.store.cursor() as cursor:
                row = cursor.execute(
                    "SELECT salt, password_hash FROM accounts WHERE username = ?",
                    ((username or "").strip(),),
                ).fetchone()
        except Exception as exc:
            logger.error("Login check for %s failed: %s", username, exc, exc_info=True)
            return False
        if row is None:
            logger.debug("Login for unknown user %s", username)
            return False
        if not row["salt"] or not row["password_hash"]:
            logger.error("Account %s has malformed credentials", username)
            return False
        return verify_password(password or "", row["salt"], row["password_hash"])

    def role_of(self, username: str) -> Optional[str]:
        with self.store.cursor() as cursor:
            row = cursor.execute(
                "SELECT role FROM accounts WHERE username = ?",
                ((username or "").strip(),),
            ).fetchone()
        return row["role"] if row else None

    def has_any_account(self) -> bool:
        """Return whether at least one account exists (first-run check)."""
        with self.store.cursor() as cursor:
            row = cursor.execute("SELECT COUNT(*) AS c FROM accounts").fetchone()
        return row["c"] > 0

    def username_exists(self, username: str) -> bool:
        with self.store.cursor() as cursor:
            row = cursor.execute(
                "SELECT 1 FROM accounts WHERE username = ?",
                ((username or "").strip(),),
            ).fetchone()
        return row is not None

    def get_account(self, username: str) -> Optional[Account]:
        with self.store.cursor() as cursor:
            row = cursor.execute(
                f"SELECT {_COLUMNS} FROM accounts WHERE username = ?",
                ((username or "").strip(),),
            ).fetchone()
        return Account(**dict(row)) if row else None

    def list_accounts(self) -> List[Account]:
        """Return all accounts, earliest first."""
        with self.store.cursor() as cursor:
            rows = cursor.execute(
                f"SELECT {_COLUMNS} FROM accounts ORDER BY created_at ASC, id ASC"
            ).fetchall()
        return [Account(**dict(row)) for row in rows]
