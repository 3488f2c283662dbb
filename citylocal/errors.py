"""Typed errors raised by the directory services.

Routes never catch these; ``citylocal.app`` maps them to HTTP responses
through ``status_code``.
"""

from __future__ import annotations

import functools
import logging

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class DirectoryError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DirectoryError):
    status_code = 400
    default_message = "Invalid input"


class AuthenticationError(DirectoryError):
    status_code = 401
    default_message = "Not authorized, no valid token"


class ForbiddenError(DirectoryError):
    status_code = 403
    default_message = "Not authorized to perform this action"


class NotFoundError(DirectoryError):
    status_code = 404
    default_message = "Not found"


class ConflictError(DirectoryError):
    status_code = 409
    default_message = "Conflict"


class InvalidStateError(DirectoryError):
    status_code = 409
    default_message = "Operation not valid in the current state"


class StorageError(DirectoryError):
    status_code = 500
    default_message = "Server error"


def storage_errors(func):
    """Re-raise unexpected SQLAlchemy failures from a service coroutine as StorageError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.exception("Storage failure in %s", func.__qualname__)
            raise StorageError() from e

    return wrapper
