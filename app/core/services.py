"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and consumers.
    Views and consumers handle transport concerns, models handle data,
    services handle logic. Every service method takes the acting user
    explicitly; nothing reads the "current user" from ambient state.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, authorization,
      missing entities). The failure carries an ErrorKind so the REST layer
      and the WebSocket channel render the same error categories.
    - Exceptions: Use for unexpected failures (database errors, bugs).
      Database errors are translated to core.exceptions.StorageError.

Usage:
    from core.services import BaseService, ServiceResult
    from core.exceptions import ValidationError

    class RoomService(BaseService):
        @classmethod
        def rename(cls, room, title: str) -> ServiceResult[Room]:
            if not title.strip():
                return ServiceResult.failure(
                    "Title is required",
                    error_code="TITLE_REQUIRED",
                )
            with cls.atomic():
                room.title = title
                room.save()
            return ServiceResult.success(room)

    # In a view
    result = RoomService.rename(room, title)
    result.raise_for_error()
    return Response(RoomSerializer(result.data).data)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

from core.exceptions import (
    BaseApplicationError,
    ErrorKind,
    InternalError,
    ValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures
        error_kind: Category of the failure (see core.exceptions.ErrorKind)

    Usage:
        # Success case
        return ServiceResult.success(message)

        # Validation failure (the default kind)
        return ServiceResult.failure("Content is empty", "EMPTY_CONTENT")

        # Failure of a specific kind, built from an exception instance
        return ServiceResult.from_error(
            PermissionDeniedError("Not a member", error_code="NOT_MEMBER")
        )

        # Check result
        if result.success:
            message = result.data
        elif result.error_kind is ErrorKind.FORBIDDEN:
            ...
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)
    error_kind: ErrorKind | None = None
    exception: BaseApplicationError | None = field(default=None, repr=False)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result of kind VALIDATION.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
        """
        return cls.from_error(
            ValidationError(error, error_code=error_code, details=errors)
        )

    @classmethod
    def from_error(cls, exc: BaseApplicationError) -> ServiceResult[T]:
        """
        Create a failed result from an application exception instance.

        The exception class decides the error kind, so callers keep using
        the exception hierarchy to describe failures without raising.
        """
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.error_code,
            errors=exc.details or None,
            error_kind=exc.kind,
            exception=exc,
        )

    def raise_for_error(self) -> None:
        """Raise the underlying application exception if this result failed."""
        if not self.success:
            raise self.exception or InternalError(
                self.error or "Unknown error", error_code=self.error_code
            )

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get a logger named after the service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
