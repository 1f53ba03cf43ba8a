"""
Pagination for message history.

Message history uses zero-indexed page/size pagination, newest first:
- page 0 holds the newest messages
- pages past the end are valid and empty
- size is clamped to the configured maximum

Design Decisions:
    - Ordering is (created_at DESC, id DESC); created_at never decreases
      within a room, so pages are stable while new messages are appended
      except for the shift caused by the new messages themselves
    - total_count is computed with the same filter as the page query
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.helpers import calculate_pagination

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from chat.models import Message


@dataclass(frozen=True)
class MessagePage:
    """One page of a room's message history."""

    items: list[Message] = field(default_factory=list)
    total_count: int = 0
    page: int = 0
    size: int = 0
    total_pages: int = 0
    is_first: bool = True
    is_last: bool = True

    @property
    def is_empty(self) -> bool:
        return not self.items

    @classmethod
    def from_queryset(cls, queryset: QuerySet, page: int, size: int) -> MessagePage:
        """
        Slice an already-ordered queryset into a page.

        Args:
            queryset: Messages ordered newest first
            page: Zero-indexed page number (>= 0)
            size: Page size (>= 1, already clamped)
        """
        total = queryset.count()
        meta = calculate_pagination(total=total, page=page, size=size)

        offset = meta["offset"]
        items = list(queryset[offset : offset + size]) if offset < total else []

        return cls(
            items=items,
            total_count=total,
            page=page,
            size=size,
            total_pages=meta["total_pages"],
            is_first=meta["is_first"],
            is_last=meta["is_last"],
        )
