"""
Password hashing helpers for operator accounts.

Passwords are stored as a salted SHA‑256 digest: a fresh random salt
(16 bytes, base64url encoded) is generated per account and the digest
of ``"<salt>:<password>"`` is kept as lowercase hex next to the salt.
The format is shared with stores created by earlier releases of the
salon app, so existing accounts keep working after a migration.
"""

import base64
import hashlib
import hmac
import secrets
from typing import Optional

SALT_BYTES = 16


def generate_salt(length: int = SALT_BYTES) -> str:
    """Return ``length`` cryptographically random bytes, base64url encoded."""
    return base64.urlsafe_b64encode(secrets.token_bytes(length)).decode("ascii")


def hash_password(password: str, salt: str) -> str:
    """Hash ``password`` with ``salt``.

    Parameters
    ----------
    password : str
        The plain text password.
    salt : str
        The encoded salt stored alongside the account.

    Returns
    -------
    str
        Hex digest of ``sha256(salt + ":" + password)``.
    """
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


def verify_password(plain_password: str, salt: Optional[str], stored_hash: Optional[str]) -> bool:
    """Check ``plain_password`` against a stored salt and digest.

    Missing or non-string credentials never match.  Comparison uses
    ``hmac.compare_digest`` on the hex digests.
    """
    if not isinstance(salt, str) or not isinstance(stored_hash, str):
        return False
    if not salt or not stored_hash:
        return False
    provided = hash_password(plain_password, salt)
    return hmac.compare_digest(provided.encode("ascii"), stored_hash.lower().encode("utf-8"))
