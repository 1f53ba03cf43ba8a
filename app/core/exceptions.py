"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the REST API and the WebSocket channel
- Machine-readable error codes for client handling
- A stable error "kind" so callers can tell permanent rejections
  (validation, authorization) from retryable infrastructure faults

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed input (empty content, short query, self-chat)
    ├── NotFoundError - Entity truly does not exist
    ├── PermissionDeniedError - Entity exists but caller is not allowed
    ├── AuthenticationError - Bad, missing or expired credential
    ├── ConflictError - Duplicates (username/email already registered)
    ├── StorageError - Database/infrastructure failure (retryable)
    └── InternalError - Unexpected failure

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise ValidationError(
        "Message content cannot be empty",
        error_code="EMPTY_CONTENT",
        details={"content": ["This field may not be blank."]},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)

Note:
    api_exception_handler (bottom of this module) is registered as the DRF
    EXCEPTION_HANDLER so views may simply raise these exceptions.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Error categories shared by the request API and the real-time channel."""

    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    CONFLICT = "CONFLICT"
    STORAGE = "STORAGE_FAULT"
    INTERNAL = "INTERNAL_ERROR"


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
        kind: Error category (see ErrorKind)
        http_status: Status code used when rendered by the REST layer
        retryable: Whether a caller may retry the operation with backoff
    """

    default_error_code: str = "APPLICATION_ERROR"
    kind: ErrorKind = ErrorKind.INTERNAL
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API/WebSocket responses.

        Example:
            {
                "error": "Chat room not found",
                "error_code": "ROOM_NOT_FOUND",
                "kind": "NOT_FOUND",
                "details": {"room_id": 12}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
            "kind": self.kind.value,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Empty or oversized message content
    - Search queries shorter than the minimum length
    - Attempting a direct chat with yourself
    - Marking your own message as read

    Field-level problems go in details as {"field": ["message", ...]}.
    """

    default_error_code: str = "VALIDATION_ERROR"
    kind = ErrorKind.VALIDATION
    http_status = status.HTTP_400_BAD_REQUEST


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested entity truly does not exist.

    Rooms that exist but that the caller is not a member of raise
    PermissionDeniedError instead.
    """

    default_error_code: str = "NOT_FOUND"
    kind = ErrorKind.NOT_FOUND
    http_status = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller lacks membership in a room.

    Note:
        For missing/invalid tokens use AuthenticationError.
    """

    default_error_code: str = "PERMISSION_DENIED"
    kind = ErrorKind.FORBIDDEN
    http_status = status.HTTP_403_FORBIDDEN


class AuthenticationError(BaseApplicationError):
    """Raised for bad credentials at login or an invalid bearer token."""

    default_error_code: str = "AUTHENTICATION_FAILED"
    kind = ErrorKind.AUTHENTICATION
    http_status = status.HTTP_401_UNAUTHORIZED


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with existing state.

    Example:
        raise ConflictError(
            "Username already exists",
            error_code="USERNAME_EXISTS",
            details={"username": ["Username already exists"]},
        )
    """

    default_error_code: str = "CONFLICT"
    kind = ErrorKind.CONFLICT
    http_status = status.HTTP_409_CONFLICT


class StorageError(BaseApplicationError):
    """
    Raised when the persistence layer fails (connectivity, unexpected
    constraint violation, lock timeout).

    These are candidates for caller-side retry with backoff and must never
    be silently swallowed. The original exception is chained via __cause__.
    """

    default_error_code: str = "STORAGE_FAULT"
    kind = ErrorKind.STORAGE
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class InternalError(BaseApplicationError):
    """Raised for unexpected failures that are neither domain nor storage errors."""

    default_error_code: str = "INTERNAL_ERROR"
    kind = ErrorKind.INTERNAL
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR


def api_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler rendering BaseApplicationError subclasses.

    Registered via REST_FRAMEWORK["EXCEPTION_HANDLER"]. DRF's own exceptions
    (serializer validation, NotAuthenticated, Http404) go through the default
    handler and are then reshaped into the same error envelope.
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        log_level = logging.ERROR if exc.http_status >= 500 else logging.INFO
        logger.log(
            log_level,
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'view'}: {exc}",
        )
        return Response(exc.to_dict(), status=exc.http_status)

    response = exception_handler(exc, context)
    if response is None:
        return None

    kind = _KIND_BY_STATUS.get(response.status_code, ErrorKind.INTERNAL)
    has_detail = isinstance(response.data, dict) and "detail" in response.data
    if kind is ErrorKind.VALIDATION and not has_detail:
        message, details = "Validation failed for request", response.data
    else:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        message, details = str(detail or response.data), None

    body: dict[str, Any] = {
        "error": message,
        "error_code": getattr(getattr(exc, "detail", None), "code", None)
        or kind.value,
        "kind": kind.value,
    }
    if details:
        body["details"] = details
    response.data = body
    return response


_KIND_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: ErrorKind.VALIDATION,
    status.HTTP_401_UNAUTHORIZED: ErrorKind.AUTHENTICATION,
    status.HTTP_403_FORBIDDEN: ErrorKind.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorKind.VALIDATION,
    status.HTTP_409_CONFLICT: ErrorKind.CONFLICT,
}
