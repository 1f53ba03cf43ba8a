"""
Chat system models.

This module defines the data models for direct (1:1) messaging:

Models:
    ChatRoom: Conversation between exactly two users
    DirectRoomPair: Helper enforcing one room per unordered user pair
    Membership: A user's participation in a room
    Message: Individual message within a room

Design Decisions:
    - A room always has exactly two memberships, created with the room in
      one transaction; membership never changes afterwards
    - Rooms and messages are never deleted
    - Message status only moves forward: SENT -> DELIVERED -> READ
    - Message.created_at is assigned by the service layer and is
      non-decreasing within a room; ties are broken by id
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.models import BaseModel


class MessageStatus(models.TextChoices):
    """
    Delivery status of a message, from the recipient's point of view.

    SENT: Durably stored
    DELIVERED: Reached at least one live connection of the recipient
    READ: Marked read by the recipient
    """

    SENT = "SENT", "Sent"
    DELIVERED = "DELIVERED", "Delivered"
    READ = "READ", "Read"


class ChatRoom(BaseModel):
    """
    A direct conversation between two users.

    Fields:
        created_at: Creation time (room lists are ordered by it, newest first)

    Relationships:
        memberships: The two Membership records of this room
        messages: All Message records of this room
        direct_pair: DirectRoomPair naming the two users in canonical order
    """

    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="Membership",
        related_name="chat_rooms",
    )

    class Meta:
        db_table = "chat_rooms"
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"ChatRoom {self.pk}"


class DirectRoomPair(models.Model):
    """
    Enforces uniqueness of direct rooms between two users.

    Stores the pair in canonical order (lower user id first) so that,
    regardless of who initiates the chat, there is only one room per pair.
    Concurrent creators race on the unique constraint; the loser reads the
    winner's room.

    Constraints:
        - UniqueConstraint(user_lower, user_higher): One room per pair
        - CheckConstraint(user_lower_id < user_higher_id): Canonical order
    """

    room = models.OneToOneField(
        ChatRoom,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="direct_pair",
        help_text="The room this pair represents",
    )

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with lower ID in this pair",
    )

    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with higher ID in this pair",
    )

    class Meta:
        db_table = "chat_direct_room_pairs"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_direct_room_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="direct_pair_user_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"DirectRoomPair({self.user_lower_id}, {self.user_higher_id}) -> {self.room_id}"

    @staticmethod
    def canonical(user_id_a: int, user_id_b: int) -> tuple[int, int]:
        """Return the two ids ordered (lower, higher)."""
        return (user_id_a, user_id_b) if user_id_a < user_id_b else (user_id_b, user_id_a)


class Membership(models.Model):
    """
    A user's participation in a room.

    Unique per (room, user). Created together with the room and never
    removed.
    """

    room = models.ForeignKey(
        ChatRoom,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_memberships",
    )
    joined_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user joined the room",
    )

    class Meta:
        db_table = "chat_room_members"
        constraints = [
            models.UniqueConstraint(
                fields=["room", "user"],
                name="unique_room_membership",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "room"], name="chat_member_user_room_idx"),
        ]

    def __str__(self) -> str:
        return f"Membership: user {self.user_id} in room {self.room_id}"


class Message(BaseModel):
    """
    A message within a room.

    Fields:
        room: Room this message belongs to
        sender: User who sent the message
        content: Trimmed, non-empty text (at most MESSAGE_CONFIG.MAX_CONTENT_LENGTH)
        status: SENT, DELIVERED or READ (forward only)
        created_at: Server-assigned, non-decreasing within the room

    Ordering:
        History pages are newest first by (created_at DESC, id DESC).
    """

    room = models.ForeignKey(
        ChatRoom,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Room this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="User who sent this message",
    )

    content = models.TextField(help_text="Message text")

    status = models.CharField(
        max_length=10,
        choices=MessageStatus.choices,
        default=MessageStatus.SENT,
        help_text="Delivery status (forward only)",
    )

    # Overrides BaseModel.created_at: assigned explicitly by MessageService
    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Timestamp when this message was stored",
    )

    class Meta:
        db_table = "messages"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["room", "-created_at", "-id"],
                name="chat_msg_room_created_idx",
            ),
            models.Index(
                fields=["room", "status"],
                name="chat_msg_room_status_idx",
            ),
        ]

    def __str__(self) -> str:
        preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        return f"Message {self.pk} in room {self.room_id}: {preview}"
