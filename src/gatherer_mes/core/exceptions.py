"""Error taxonomy for the equipment and classification services.

Service internals raise these exceptions; the ``operation`` decorator in
``gatherer_mes.services.base`` converts them into Error envelopes so that no
exception crosses the service boundary.
"""

from enum import Enum

from sqlalchemy.exc import IntegrityError


class ErrorKind(str, Enum):
    """Stable error categories exposed in result envelopes."""

    VALIDATION = "ValidationError"
    NOT_FOUND = "NotFoundError"
    CONFLICT = "ConflictError"
    DEPENDENCY = "DependencyError"
    PROTECTED = "ProtectedEntityError"
    REFERENTIAL = "ReferentialError"


class MESError(Exception):
    """Base class for all domain errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MESError):
    """Empty, out-of-range or malformed input."""

    kind = ErrorKind.VALIDATION


class NotFoundError(MESError):
    """A referenced id or name does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(MESError):
    """Name, code or description collision."""

    kind = ErrorKind.CONFLICT


class DependencyError(MESError):
    """Delete blocked by existing children, items or associations."""

    kind = ErrorKind.DEPENDENCY


class ProtectedEntityError(MESError):
    """Attempt to delete or relocate seeded system data."""

    kind = ErrorKind.PROTECTED


class ReferentialError(MESError):
    """Foreign key failure surfaced from the store."""

    kind = ErrorKind.REFERENTIAL


# SQLSTATE classes raised by PostgreSQL drivers
_PG_UNIQUE_VIOLATION = "23505"
_PG_FOREIGN_KEY_VIOLATION = "23503"
_PG_CHECK_VIOLATION = "23514"


def _sqlstate(exc: IntegrityError) -> str | None:
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    return None


def translate_integrity_error(
    exc: IntegrityError,
    conflict_message: str = "Duplicate value violates a uniqueness rule",
    referential_message: str = "Referenced record does not exist or is still in use",
) -> MESError:
    """Map a storage constraint violation onto the domain taxonomy.

    Args:
        exc: The IntegrityError raised at flush time
        conflict_message: Message used for unique violations
        referential_message: Message used for foreign key violations

    Returns:
        ConflictError, ReferentialError or ValidationError
    """
    state = _sqlstate(exc)
    text = str(exc.orig).lower()

    if state == _PG_UNIQUE_VIOLATION or "unique" in text:
        return ConflictError(conflict_message)
    if state == _PG_FOREIGN_KEY_VIOLATION or "foreign key" in text:
        return ReferentialError(referential_message)
    if state == _PG_CHECK_VIOLATION or "check constraint" in text:
        return ValidationError("Value violates a storage check constraint")
    return ReferentialError(referential_message)
