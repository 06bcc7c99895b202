"""
Error taxonomy for the Sitespeed Result Service

Every error raised by the core carries the HTTP status it maps to, so the
exception handler in main.py can render it without inspecting the type.
"""

import logging
from dataclasses import dataclass
from typing import Optional


class ServiceError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInputError(ServiceError):
    """Bad identifier, malformed or over-count URLs."""

    status_code = 400


class NotFoundError(ServiceError):
    """Missing archive, object or archive entry."""

    status_code = 404

    def __init__(self, message: str = "Not Found", details: Optional[str] = None):
        super().__init__(message, details)


class ToolFailureError(ServiceError):
    """The sitespeed process failed or did not produce the expected output."""

    status_code = 500


class InternalFailureError(ServiceError):
    """Workspace or archive I/O failed."""

    status_code = 500


class StorageError(ServiceError):
    """An artifact store operation failed. The backend error is kept in ``cause``."""

    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, details=str(cause) if cause is not None else None)
        self.cause = cause


class ObjectNotFoundError(StorageError, NotFoundError):
    """The requested key does not exist in the artifact store."""

    status_code = 404


@dataclass
class Outcome:
    """
    Result of a best-effort side effect.

    Cleanup and other non-fatal operations return an Outcome instead of
    raising; the caller decides whether a failure is worth a log line.
    """

    ok: bool
    error: Optional[BaseException] = None

    @classmethod
    def success(cls) -> "Outcome":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome":
        return cls(ok=False, error=error)

    def log_failure(self, logger: logging.Logger, message: str) -> "Outcome":
        if not self.ok:
            logger.warning(f"⚠️ {message}: {self.error}")
        return self
