"""
Serializers for chat API and WebSocket payloads.

This module provides serializers for the chat system:
- Room serializers (read, direct-room request)
- Message serializers (read, preview, create, page)
- Inbound WebSocket payload serializers

Serializer Hierarchy:
    ChatRoomSerializer: Room with counterpart user and last message preview
    DirectRoomRequestSerializer: Body of POST rooms/direct/

    MessageSerializer: Full message (REST responses and message.new events)
    MessagePreviewSerializer: Minimal message for room list preview
    MessageCreateSerializer: Body of POST rooms/{id}/messages/
    MessagePageSerializer: One page of history

    SubscribePayloadSerializer, SendPayloadSerializer,
    TypingPayloadSerializer, ReadPayloadSerializer: WebSocket inbound

Design Decisions:
    - Read and write serializers are separate for clarity
    - Content rules (trim, empty, max length) live in MessageService so the
      REST API and the WebSocket report the same error codes
    - ChatRoomSerializer needs the viewing user in context["user"]
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from chat.models import ChatRoom, Message
from chat.services import ChatRoomService


# =============================================================================
# Message Serializers
# =============================================================================


class MessagePreviewSerializer(serializers.ModelSerializer):
    """Minimal message representation embedded in room lists."""

    sender_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Message
        fields = ["id", "sender_id", "content", "status", "created_at"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    """
    Full message serializer.

    Used by the history endpoint, the send endpoint and as the payload of
    message.new events.
    """

    room_id = serializers.IntegerField(read_only=True)
    sender = UserSummarySerializer(read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "room_id",
            "sender",
            "content",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    """Body of the send-message endpoint."""

    content = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        help_text="Message text (1-5000 characters after trimming)",
    )


class MessagePageSerializer(serializers.Serializer):
    """One page of message history (chat.pagination.MessagePage)."""

    items = MessageSerializer(many=True)
    total_count = serializers.IntegerField()
    page = serializers.IntegerField()
    size = serializers.IntegerField()
    total_pages = serializers.IntegerField()
    is_first = serializers.BooleanField()
    is_last = serializers.BooleanField()
    is_empty = serializers.BooleanField()


class MarkAllReadResponseSerializer(serializers.Serializer):
    updated = serializers.IntegerField(help_text="Number of messages marked read")


# =============================================================================
# Room Serializers
# =============================================================================


class ChatRoomSerializer(serializers.ModelSerializer):
    """
    Room as seen by one of its members.

    Fields:
        other_user: The counterpart participant
        last_message: Newest message, or null
    """

    other_user = serializers.SerializerMethodField()
    last_message = serializers.SerializerMethodField()

    class Meta:
        model = ChatRoom
        fields = ["id", "other_user", "last_message", "created_at"]
        read_only_fields = fields

    def get_other_user(self, obj: ChatRoom) -> dict | None:
        other = ChatRoomService.get_other_member(obj, self.context["user"])
        return UserSummarySerializer(other).data if other else None

    def get_last_message(self, obj: ChatRoom) -> dict | None:
        message = ChatRoomService.get_last_message(obj)
        return MessagePreviewSerializer(message).data if message else None


class DirectRoomRequestSerializer(serializers.Serializer):
    """Body of the get-or-create direct room endpoint."""

    target_user_id = serializers.IntegerField(min_value=1)


# =============================================================================
# WebSocket Inbound Payloads
# =============================================================================


class SubscribePayloadSerializer(serializers.Serializer):
    """subscribe / unsubscribe {room_id}"""

    room_id = serializers.IntegerField(min_value=1)


class SendPayloadSerializer(serializers.Serializer):
    """chat.send {room_id, content}"""

    room_id = serializers.IntegerField(min_value=1)
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)


class TypingPayloadSerializer(serializers.Serializer):
    """chat.typing {room_id, is_typing}"""

    room_id = serializers.IntegerField(min_value=1)
    is_typing = serializers.BooleanField(default=True)


class ReadPayloadSerializer(serializers.Serializer):
    """chat.read {room_id, message_id?}; without message_id the whole room is read."""

    room_id = serializers.IntegerField(min_value=1)
    message_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
