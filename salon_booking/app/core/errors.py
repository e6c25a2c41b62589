"""
Exception hierarchy shared by the store and its services.

Every error raised on purpose by the engine derives from
``BookingEngineError``.  ``ValidationError`` and ``NotFoundError`` also
derive from the matching builtin (``ValueError`` / ``LookupError``) so
callers that only know the builtins still catch them.
"""


class BookingEngineError(Exception):
    """Base class for all booking engine errors."""


class ValidationError(BookingEngineError, ValueError):
    """Input has the wrong shape or length."""


class DuplicateError(BookingEngineError):
    """A unique constraint would be violated."""


class NotFoundError(BookingEngineError, LookupError):
    """The operation targets an id that does not exist."""


class IntegrityError(BookingEngineError):
    """A write completed but could not be verified afterwards."""


class StorageError(BookingEngineError):
    """The underlying SQLite store failed or is closed."""


class SlotUnavailableError(BookingEngineError):
    """A reservation overlaps an existing active booking."""
