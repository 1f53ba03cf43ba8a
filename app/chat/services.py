"""
Chat system service layer.

This module provides the business logic for direct messaging, encapsulating
all operations on rooms, memberships and messages.

Services:
    ChatRoomService: Room directory (get-or-create direct room, list, get)
    MessageService: Message store (send, history pages, read/delivered status)

Design Principles:
    - Services are stateless (use class methods)
    - The acting user is always an explicit argument
    - Expected failures return ServiceResult failures carrying an ErrorKind
    - Database faults raise StorageError (see core.decorators)
    - Multi-row writes run inside one transaction

Usage:
    from chat.services import ChatRoomService, MessageService

    result = ChatRoomService.get_or_create_direct_room(alice, bob.id)
    room, created = result.data

    result = MessageService.send_message(room.id, alice, "Hello!")
    message = result.data

    page = MessageService.get_messages(room.id, bob, page=0, size=20).data
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.utils import timezone

from core.decorators import translate_storage_errors
from core.exceptions import NotFoundError, ValidationError
from core.services import BaseService, ServiceResult

from chat.authorization import MembershipGuard, require_room_member
from chat.constants import MESSAGE_CONFIG, default_page_size, max_page_size
from chat.models import ChatRoom, DirectRoomPair, Membership, Message, MessageStatus
from chat.pagination import MessagePage

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)


class ChatRoomService(BaseService):
    """
    Service for room directory operations.

    Methods:
        get_or_create_direct_room: Idempotent room lookup/creation for a user pair
        list_rooms_for_user: Rooms of a user, newest room first
        get_room: Room detail for a member
        get_other_member: The counterpart participant of a room
        get_last_message: Newest message of a room
    """

    @classmethod
    @translate_storage_errors
    def get_or_create_direct_room(
        cls,
        current_user: User,
        target_user_id: int,
    ) -> ServiceResult[tuple[ChatRoom, bool]]:
        """
        Get or create the direct room between the current user and a target.

        Implementation:
            1. Reject self-chat before any lookup
            2. Check the target exists and is active
            3. Canonicalize order (lower user id first)
            4. Return the existing room for the pair, if any
            5. Otherwise create room + pair + both memberships in one
               transaction; a concurrent creator that wins the unique
               constraint makes us re-read its room

        Returns:
            ServiceResult with (room, created)

        Error codes:
            SAME_USER: Cannot create a direct room with yourself
            USER_NOT_FOUND: Target user does not exist
        """
        if current_user.id == target_user_id:
            return ServiceResult.failure(
                "Cannot create a chat room with yourself",
                error_code="SAME_USER",
                errors={"target_user_id": ["Must be a different user."]},
            )

        User = get_user_model()
        if not User.objects.filter(id=target_user_id, is_active=True).exists():
            return ServiceResult.from_error(
                NotFoundError(
                    f"User {target_user_id} not found",
                    error_code="USER_NOT_FOUND",
                    details={"target_user_id": target_user_id},
                )
            )

        user_lower_id, user_higher_id = DirectRoomPair.canonical(
            current_user.id, target_user_id
        )

        existing = cls._find_pair(user_lower_id, user_higher_id)
        if existing:
            cls.get_logger().debug(
                f"Found existing room {existing.room_id} "
                f"between users {user_lower_id} and {user_higher_id}"
            )
            return ServiceResult.success((existing.room, False))

        try:
            with cls.atomic():
                room = ChatRoom.objects.create()
                DirectRoomPair.objects.create(
                    room=room,
                    user_lower_id=user_lower_id,
                    user_higher_id=user_higher_id,
                )
                Membership.objects.bulk_create(
                    [
                        Membership(room=room, user_id=user_lower_id),
                        Membership(room=room, user_id=user_higher_id),
                    ]
                )
        except IntegrityError:
            winner = cls._find_pair(user_lower_id, user_higher_id)
            if winner is None:
                raise
            cls.get_logger().info(
                f"Concurrent creation of room for users {user_lower_id} and "
                f"{user_higher_id}, using room {winner.room_id}"
            )
            return ServiceResult.success((winner.room, False))

        cls.get_logger().info(
            f"Created room {room.id} between users {user_lower_id} and {user_higher_id}"
        )
        return ServiceResult.success((room, True))

    @staticmethod
    def _find_pair(user_lower_id: int, user_higher_id: int) -> DirectRoomPair | None:
        return (
            DirectRoomPair.objects.select_related("room")
            .filter(user_lower_id=user_lower_id, user_higher_id=user_higher_id)
            .first()
        )

    @classmethod
    @translate_storage_errors
    def list_rooms_for_user(cls, user: User) -> ServiceResult[list[ChatRoom]]:
        """
        List every room the user is a member of, newest room first.

        Ordered by room creation time, not by last activity.
        """
        rooms = list(
            ChatRoom.objects.filter(memberships__user_id=user.id)
            .prefetch_related("memberships__user")
            .order_by("-created_at", "-id")
        )
        return ServiceResult.success(rooms)

    @classmethod
    @translate_storage_errors
    @require_room_member()
    def get_room(cls, room_id: int, user: User) -> ServiceResult[ChatRoom]:
        """
        Get a room the user is a member of.

        Error codes:
            ROOM_NOT_FOUND: Room does not exist
            NOT_MEMBER: Room exists but the user is not a member
        """
        room = ChatRoom.objects.prefetch_related("memberships__user").get(id=room_id)
        return ServiceResult.success(room)

    @classmethod
    def get_other_member(cls, room: ChatRoom, user: User) -> User | None:
        """Return the participant of the room who is not user."""
        for membership in room.memberships.all():
            if membership.user_id != user.id:
                return membership.user
        return None

    @classmethod
    def get_last_message(cls, room: ChatRoom) -> Message | None:
        """Return the newest message of the room, or None."""
        return (
            Message.objects.filter(room_id=room.id)
            .select_related("sender")
            .order_by("-created_at", "-id")
            .first()
        )


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        send_message: Append a message to a room
        get_messages: Page through a room's history, newest first
        mark_read: Mark one received message as READ
        mark_all_read: Mark every received message of a room as READ
        mark_delivered: Advance SENT messages to DELIVERED for a recipient
    """

    @classmethod
    @translate_storage_errors
    def send_message(
        cls,
        room_id: int,
        sender: User,
        content: str,
    ) -> ServiceResult[Message]:
        """
        Append a message to a room.

        The room row is locked for the duration of the insert so that
        appends to one room are serialized; created_at is never earlier
        than the newest message already in the room.

        Returns:
            ServiceResult with the new Message (status SENT)

        Error codes:
            ROOM_NOT_FOUND: Room does not exist
            NOT_MEMBER: Sender is not a member of the room
            EMPTY_CONTENT: Content is empty after trimming
            CONTENT_TOO_LONG: Content exceeds MESSAGE_CONFIG.MAX_CONTENT_LENGTH
        """
        failure = MembershipGuard.require_member(sender.id, room_id)
        if failure is not None:
            return failure

        content = content.strip() if isinstance(content, str) else ""
        if not content:
            return ServiceResult.failure(
                "Message content cannot be empty",
                error_code="EMPTY_CONTENT",
                errors={"content": ["This field may not be blank."]},
            )
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content cannot exceed {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code="CONTENT_TOO_LONG",
                errors={
                    "content": [
                        f"Ensure this field has no more than "
                        f"{MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters."
                    ]
                },
            )

        with cls.atomic():
            room = ChatRoom.objects.select_for_update().get(id=room_id)

            newest = (
                Message.objects.filter(room_id=room.id)
                .order_by("-created_at", "-id")
                .values_list("created_at", flat=True)
                .first()
            )
            now = timezone.now()
            created_at = max(now, newest) if newest else now

            message = Message.objects.create(
                room=room,
                sender=sender,
                content=content,
                status=MessageStatus.SENT,
                created_at=created_at,
            )

        cls.get_logger().debug(
            f"User {sender.id} sent message {message.id} to room {room_id}"
        )
        return ServiceResult.success(message)

    @classmethod
    @translate_storage_errors
    def get_messages(
        cls,
        room_id: int,
        user: User,
        page: int = 0,
        size: int | None = None,
    ) -> ServiceResult[MessagePage]:
        """
        Return one page of the room's history, newest first.

        Args:
            room_id: Room to read
            user: Acting user (must be a member)
            page: Zero-indexed page number
            size: Page size; clamped to the configured maximum

        Error codes:
            INVALID_PAGE: page is negative
            INVALID_PAGE_SIZE: size is smaller than 1
            ROOM_NOT_FOUND / NOT_MEMBER: see MembershipGuard
        """
        if size is None:
            size = default_page_size()

        if page < 0:
            return ServiceResult.failure(
                "Page number cannot be negative",
                error_code="INVALID_PAGE",
                errors={"page": ["Ensure this value is greater than or equal to 0."]},
            )
        if size < 1:
            return ServiceResult.failure(
                "Page size must be at least 1",
                error_code="INVALID_PAGE_SIZE",
                errors={"size": ["Ensure this value is greater than or equal to 1."]},
            )

        failure = MembershipGuard.require_member(user.id, room_id)
        if failure is not None:
            return failure

        size = min(size, max_page_size())
        queryset = (
            Message.objects.filter(room_id=room_id)
            .select_related("sender")
            .order_by("-created_at", "-id")
        )
        return ServiceResult.success(MessagePage.from_queryset(queryset, page, size))

    @classmethod
    @translate_storage_errors
    def mark_read(cls, message_id: int, user: User) -> ServiceResult[Message]:
        """
        Mark a received message as READ.

        Idempotent: a message that is already READ is returned unchanged
        without a write.

        Error codes:
            MESSAGE_NOT_FOUND: Message does not exist
            OWN_MESSAGE: The user sent this message
            NOT_MEMBER: The user is not a member of the message's room
        """
        try:
            message = Message.objects.select_related("sender").get(id=message_id)
        except Message.DoesNotExist:
            return ServiceResult.from_error(
                NotFoundError(
                    "Message not found",
                    error_code="MESSAGE_NOT_FOUND",
                    details={"message_id": message_id},
                )
            )

        if message.sender_id == user.id:
            return ServiceResult.from_error(
                ValidationError(
                    "Cannot mark your own message as read",
                    error_code="OWN_MESSAGE",
                )
            )

        failure = MembershipGuard.require_member(user.id, message.room_id)
        if failure is not None:
            return failure

        if message.status == MessageStatus.READ:
            return ServiceResult.success(message)

        now = timezone.now()
        with cls.atomic():
            Message.objects.filter(id=message.id).exclude(
                status=MessageStatus.READ
            ).update(status=MessageStatus.READ, updated_at=now)

        message.status = MessageStatus.READ
        message.updated_at = now

        cls.get_logger().debug(f"User {user.id} read message {message.id}")
        return ServiceResult.success(message)

    @classmethod
    @translate_storage_errors
    @require_room_member()
    def mark_all_read(cls, room_id: int, user: User) -> ServiceResult[int]:
        """
        Mark every message in the room not sent by user as READ.

        Runs as a single UPDATE; the user's own messages are untouched.

        Returns:
            ServiceResult with the number of messages changed
        """
        with cls.atomic():
            updated = (
                Message.objects.filter(room_id=room_id)
                .exclude(sender_id=user.id)
                .exclude(status=MessageStatus.READ)
                .update(status=MessageStatus.READ, updated_at=timezone.now())
            )

        cls.get_logger().debug(
            f"User {user.id} marked {updated} messages read in room {room_id}"
        )
        return ServiceResult.success(updated)

    @classmethod
    @translate_storage_errors
    def mark_delivered(cls, message_ids: list[int], recipient_id: int) -> int:
        """
        Advance SENT messages to DELIVERED for a recipient.

        Only messages in rooms the recipient belongs to and not sent by the
        recipient are touched; DELIVERED and READ messages are left alone.

        Returns:
            Number of messages changed
        """
        if not message_ids:
            return 0

        with cls.atomic():
            return (
                Message.objects.filter(
                    id__in=message_ids,
                    status=MessageStatus.SENT,
                    room__memberships__user_id=recipient_id,
                )
                .exclude(sender_id=recipient_id)
                .update(status=MessageStatus.DELIVERED, updated_at=timezone.now())
            )
