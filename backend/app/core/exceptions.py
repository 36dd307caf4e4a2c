"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InvalidInputError(AppException):
    """Raised for malformed dates, timeslots, months or quantities."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_INVALID_INPUT",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found or not owned by the caller."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class StoreUnavailableError(AppException):
    """The store timed out or dropped the connection. Safe to retry."""

    def __init__(self, message: str = "Storage temporarily unavailable"):
        super().__init__(
            message=message,
            error_code="ERR_TRANSIENT",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


# Business rule violations. Never retried.

class ConflictError(AppException):
    """Base class for reservation and settlement guard violations."""

    error_code = "ERR_CONFLICT"

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code=type(self).error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class OutstandingReservationError(ConflictError):
    error_code = "ERR_CONFLICT_001"

    def __init__(self, reservation_id: int):
        super().__init__(
            "Outstanding reservation exists",
            details={"reservation_id": reservation_id}
        )


class UnsettledReservationError(ConflictError):
    error_code = "ERR_CONFLICT_002"

    def __init__(self, reservation_id: int):
        super().__init__(
            "Must settle previous reservation first",
            details={"reservation_id": reservation_id}
        )


class DuplicateSlotError(ConflictError):
    error_code = "ERR_CONFLICT_003"

    def __init__(self, date: str, timeslot: str):
        super().__init__(
            "Slot already reserved by this user for this date/shift",
            details={"date": date, "timeslot": timeslot}
        )


class ReservationNotPendingError(ConflictError):
    error_code = "ERR_CONFLICT_004"

    def __init__(self, reservation_id: int, current_status: str):
        super().__init__(
            "Reservation not awaiting settlement",
            details={"reservation_id": reservation_id, "status": current_status}
        )


class ReservationAlreadySettledError(ConflictError):
    error_code = "ERR_CONFLICT_005"

    def __init__(self, reservation_id: int):
        super().__init__(
            "Reservation already settled",
            details={"reservation_id": reservation_id}
        )


class LicensePlateConflictError(ConflictError):
    error_code = "ERR_CONFLICT_006"


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": exc.errors()
            }
        }
    )


def is_transient_store_error(exc: Exception) -> bool:
    """True for timeouts and dropped connections, the retry-eligible failures."""
    if isinstance(exc, (TimeoutError, OperationalError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when a unique index rejected the write, as opposed to a foreign key or NOT NULL."""
    code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if code:
        return code == "23505"
    return "UNIQUE" in str(exc.orig).upper()


async def store_exception_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    """Handler for database driver errors that escaped the domain layer."""
    if is_transient_store_error(exc):
        logger.warning("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
        return await app_exception_handler(request, StoreUnavailableError())
    return await generic_exception_handler(request, exc)


async def timeout_exception_handler(request: Request, exc: TimeoutError) -> JSONResponse:
    logger.warning("Store timeout on %s %s", request.method, request.url.path)
    return await app_exception_handler(request, StoreUnavailableError("Storage request timed out"))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.error(
        "Unhandled exception: %s: %s", type(exc).__name__, exc,
        exc_info=(type(exc), exc, exc.__traceback__)
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
