"""Normalize datastore failures into HTTP status + safe message.

Raw driver messages are kept in ``details`` for logs and never returned
to clients.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from airyze.core.errors import AppError, ConflictError, InternalError, ValidationError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"
CHECK_VIOLATION = "23514"

GENERIC_MESSAGE = "An error occurred while processing your request"

_KNOWN_CODES: dict[str, tuple[int, str]] = {
    FOREIGN_KEY_VIOLATION: (400, "Referenced resource does not exist"),
    NOT_NULL_VIOLATION: (400, "Required field is missing"),
    CHECK_VIOLATION: (400, "Invalid data provided"),
}

# SQLite reports constraint failures by message only.
_SQLITE_MARKERS = (
    ("UNIQUE constraint failed", UNIQUE_VIOLATION),
    ("FOREIGN KEY constraint failed", FOREIGN_KEY_VIOLATION),
    ("NOT NULL constraint failed", NOT_NULL_VIOLATION),
    ("CHECK constraint failed", CHECK_VIOLATION),
)


@dataclass
class DbError:
    message: str
    code: str | None = None


@dataclass
class NormalizedResult:
    success: bool
    status: int
    data: Any = None
    error: str | None = None
    details: str | None = None

    def as_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "status": self.status, "data": self.data}
        return {"success": False, "status": self.status, "error": self.error, "details": self.details}


def normalize(data: Any = None, error: DbError | None = None) -> NormalizedResult:
    """Map a ``(data, error)`` pair to a normalized result. ``error`` wins over ``data``."""
    if error is None:
        return NormalizedResult(success=True, status=200, data=data)
    status, message = classify(error)
    return NormalizedResult(success=False, status=status, error=message, details=error.message)


def classify(error: DbError) -> tuple[int, str]:
    if error.code == UNIQUE_VIOLATION:
        if "email" in (error.message or "").lower():
            return 409, "Email already registered"
        return 409, "Resource already exists"
    return _KNOWN_CODES.get(error.code or "", (500, GENERIC_MESSAGE))


def db_error_from_exception(exc: SQLAlchemyError) -> DbError:
    orig = getattr(exc, "orig", None)
    message = str(orig) if orig is not None else str(exc)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if not code:
        for marker, sqlstate in _SQLITE_MARKERS:
            if marker in message:
                code = sqlstate
                break
    return DbError(message=message, code=code)


def to_app_error(exc: SQLAlchemyError, conflict_message: str | None = None) -> AppError:
    result = normalize(error=db_error_from_exception(exc))
    if result.status == 409:
        return ConflictError(conflict_message or result.error, details=result.details)
    if result.status == 400:
        return ValidationError(result.error, details=result.details)
    return InternalError(result.error, details=result.details)


@contextmanager
def db_errors(db: Session, conflict_message: str | None = None) -> Iterator[None]:
    """Roll back and re-raise datastore failures as :class:`AppError`."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Datastore error: %s", exc.__class__.__name__)
        raise to_app_error(exc, conflict_message) from exc
