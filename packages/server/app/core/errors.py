"""
Typed errors for the directory core.

Every error carries a stable code and HTTP status; the message is safe to
show to API clients. Storage driver text only ever goes to the log.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

log = structlog.get_logger()


class DirectoryError(Exception):
    """Base exception for all directory errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_response(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status_code,
            }
        }


class ValidationFailed(DirectoryError):
    code = "VALIDATION_FAILED"
    status_code = 400


class NotFound(DirectoryError):
    code = "NOT_FOUND"
    status_code = 404


class Conflict(DirectoryError):
    code = "CONFLICT"
    status_code = 409


class InvariantViolation(DirectoryError):
    code = "INVARIANT_VIOLATION"
    status_code = 422


class UnsupportedConfiguration(DirectoryError):
    """Fatal configuration error; retrying will not help."""

    code = "UNSUPPORTED_CONFIGURATION"
    status_code = 500


class UpstreamFailure(DirectoryError):
    code = "UPSTREAM_FAILURE"
    status_code = 503


@contextmanager
def storage_errors(operation: str, entity: str, key: Any = None) -> Iterator[None]:
    """Wrap SQLAlchemy failures raised inside the block into directory errors.

    IntegrityError becomes Conflict, every other SQLAlchemyError becomes
    UpstreamFailure. Directory errors raised inside pass through untouched.
    """
    context = {"operation": operation, "entity": entity, "key": str(key) if key is not None else None}
    try:
        yield
    except IntegrityError as exc:
        log.warning("storage.conflict", **context, detail=str(exc.orig))
        raise Conflict(f"{entity} conflicts with an existing record", context) from exc
    except SQLAlchemyError as exc:
        log.error("storage.failure", **context, detail=str(exc))
        raise UpstreamFailure(f"storage unavailable while trying to {operation}", context) from exc
