"""
Custom decorators for services.

This module provides generic infrastructure decorators for:
- Storage fault translation (Django DatabaseError -> StorageError)

Usage:
    from core.decorators import translate_storage_errors

    class MessageService(BaseService):
        @classmethod
        @translate_storage_errors
        def send_message(cls, room_id, sender, content):
            ...

Note:
    translate_storage_errors must sit *below* @classmethod so it wraps the
    plain function.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

from django.db import DatabaseError

from core.exceptions import StorageError

logger = logging.getLogger(__name__)


def translate_storage_errors(func: Callable):
    """
    Convert Django database errors raised by func into StorageError.

    The original exception is chained as __cause__ and logged at ERROR.
    Application errors and everything else pass through untouched.

    Example:
        @classmethod
        @translate_storage_errors
        def mark_all_read(cls, room_id, user):
            ...
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as e:
            logger.error(
                f"Storage fault in {func.__qualname__}: {e.__class__.__name__}: {e}",
                exc_info=True,
            )
            raise StorageError(
                "The data store is temporarily unavailable",
                details={"operation": func.__name__},
            ) from e

    return wrapper
