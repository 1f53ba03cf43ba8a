"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- Pagination metadata (zero-indexed pages)
- Query parameter parsing

Usage:
    from core.helpers import calculate_pagination, parse_int_param

    meta = calculate_pagination(total=45, page=0, size=20)
    page = parse_int_param(request.query_params, "page", default=0)
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from core.exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping


def calculate_pagination(total: int, page: int, size: int) -> dict:
    """
    Calculate pagination metadata for a zero-indexed page.

    Pages past the end are reported as-is (not clamped back), so callers
    can return an empty item list for them.

    Args:
        total: Total number of items
        page: Current page number (0-indexed)
        size: Items per page (must be >= 1)

    Returns:
        Dict with pagination metadata

    Example:
        calculate_pagination(total=45, page=2, size=20)
        # {
        #     "total_count": 45,
        #     "page": 2,
        #     "size": 20,
        #     "total_pages": 3,
        #     "offset": 40,
        #     "is_first": False,
        #     "is_last": True,
        # }
    """
    total_pages = math.ceil(total / size) if size > 0 else 0
    return {
        "total_count": total,
        "page": page,
        "size": size,
        "total_pages": total_pages,
        "offset": page * size,
        "is_first": page == 0,
        "is_last": page >= total_pages - 1,
    }


def parse_int_param(params: Mapping, name: str, default: int) -> int:
    """
    Read an integer query parameter, raising ValidationError on garbage.

    Example:
        size = parse_int_param(request.query_params, "size", default=20)
    """
    raw = params.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(
            f"'{name}' must be an integer",
            error_code="INVALID_PARAMETER",
            details={name: ["A valid integer is required."]},
        ) from None
