"""
Service-level authorization for chat operations.

This module provides the membership checks shared by every chat service,
the REST views and the WebSocket consumer. DRF permission classes only
check authentication; room access is decided here.

Key Components:
    MembershipGuard: Stateless membership checks
    require_room_member: Decorator for service methods taking room_id + user

Error Codes:
    ROOM_NOT_FOUND: The room does not exist (NOT_FOUND kind)
    NOT_MEMBER: The room exists but the user is not a member (FORBIDDEN kind)

Usage:
    if MembershipGuard.is_member(user.id, room_id):
        ...

    failure = MembershipGuard.require_member(user.id, room_id)
    if failure is not None:
        return failure

    class MessageService(BaseService):
        @classmethod
        @require_room_member()
        def get_messages(cls, room_id, user, page, size):
            ...
"""

from __future__ import annotations

import inspect
from functools import wraps
from typing import Callable

from core.exceptions import NotFoundError, PermissionDeniedError
from core.services import ServiceResult

from chat.models import ChatRoom, Membership


class MembershipGuard:
    """
    Stateless membership checks.

    All methods are classmethods; no results are cached, so a check always
    reflects committed state.
    """

    @classmethod
    def is_member(cls, user_id: int, room_id: int) -> bool:
        """Check if the user is a member of the room."""
        return Membership.objects.filter(room_id=room_id, user_id=user_id).exists()

    @classmethod
    def require_member(cls, user_id: int, room_id: int) -> ServiceResult | None:
        """
        Return a failure result unless the user is a member of the room.

        NOT_FOUND is reported only when the room truly does not exist;
        an existing room the caller cannot see is FORBIDDEN.

        Returns:
            None if the user is a member, otherwise a failed ServiceResult
        """
        if cls.is_member(user_id, room_id):
            return None

        if not ChatRoom.objects.filter(id=room_id).exists():
            return ServiceResult.from_error(
                NotFoundError(
                    "Chat room not found",
                    error_code="ROOM_NOT_FOUND",
                    details={"room_id": room_id},
                )
            )

        return ServiceResult.from_error(
            PermissionDeniedError(
                "You are not a member of this chat room",
                error_code="NOT_MEMBER",
                details={"room_id": room_id},
            )
        )

    @classmethod
    def member_ids(cls, room_id: int) -> list[int]:
        """Ids of the room's members, ascending."""
        return list(
            Membership.objects.filter(room_id=room_id)
            .order_by("user_id")
            .values_list("user_id", flat=True)
        )


def require_room_member(
    room_param: str = "room_id",
    user_param: str = "user",
) -> Callable:
    """
    Decorator that rejects callers who are not members of the room.

    The decorated service method must take the room id and the acting user
    as keyword or positional arguments named room_param and user_param.
    A failed check returns the guard's ServiceResult without calling the
    method.

    Example:
        @classmethod
        @require_room_member()
        def mark_all_read(cls, room_id: int, user: User) -> ServiceResult[int]:
            ...
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs):
            bound = signature.bind_partial(*args, **kwargs)
            room_id = bound.arguments.get(room_param)
            user = bound.arguments.get(user_param)

            if user is None or room_id is None:
                return ServiceResult.failure(
                    "Missing required parameters",
                    error_code="INVALID_REQUEST",
                )

            failure = MembershipGuard.require_member(user.id, room_id)
            if failure is not None:
                return failure
            return func(*args, **kwargs)

        return wrapper

    return decorator
