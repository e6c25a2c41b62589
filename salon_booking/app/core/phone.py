"""
Phone number helpers.

Bookings are looked up by phone number, so every number is reduced to
one canonical digit string before it is stored or queried: the country
prefix followed by the subscriber number (``254712345678``).
"""

import re
from typing import Optional

_SEPARATORS = re.compile(r"[\s\-\(\)]")

_LOCAL_PATTERNS = [
    r"^\+{cc}[17]\d{{8}}$",  # +254712345678
    r"^{cc}[17]\d{{8}}$",  # 254712345678
    r"^0[17]\d{{8}}$",  # 0712345678
]


def _clean(raw: str) -> str:
    return _SEPARATORS.sub("", raw)


def normalize_phone(raw: Optional[str], country_code: str = "254") -> Optional[str]:
    """Return ``raw`` in canonical ``<country code><number>`` form.

    Spaces, dashes and parentheses are removed first.  ``+254...`` loses
    its plus sign and a leading trunk ``0`` is replaced with the country
    code.  Anything else is returned cleaned but otherwise untouched.
    Empty input yields ``None``.
    """
    if raw is None or not raw.strip():
        return None
    cleaned = _clean(raw)
    if cleaned.startswith("+" + country_code):
        return cleaned[1:]
    if cleaned.startswith(country_code):
        return cleaned
    if cleaned.startswith("0"):
        return country_code + cleaned[1:]
    return cleaned


def is_valid_phone(raw: Optional[str], country_code: str = "254") -> bool:
    """Check ``raw`` against the accepted local mobile formats."""
    if raw is None or not raw.strip():
        return False
    cleaned = _clean(raw)
    cc = re.escape(country_code)
    return any(re.match(p.format(cc=cc), cleaned) for p in _LOCAL_PATTERNS)


def phone_validation_error(raw: Optional[str], country_code: str = "254") -> Optional[str]:
    """Return a user-facing message describing what is wrong, or ``None``."""
    if raw is None or not raw.strip():
        return "Phone number is required"
    if not is_valid_phone(raw, country_code):
        return "Enter a valid phone number (e.g., 0712345678 or +{}712345678)".format(country_code)
    return None
