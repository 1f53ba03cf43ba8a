"""
Real-time event type definitions and builders.

Domain events follow this structure:
{
    "type": str,           # Event type identifier
    "schema_version": int, # Schema version (currently 1)
    "timestamp": str,      # ISO 8601 timestamp
    "payload": dict        # Event-specific data
}

The fan-out engine adds "channel" ("room.{id}" or "user") to each copy it
delivers, see with_channel().

Error events are flat so clients can branch on kind/error_code directly:
{
    "type": "error",
    "schema_version": 1,
    "timestamp": str,
    "kind": "FORBIDDEN",
    "error_code": "NOT_MEMBER",
    "error": "You are not a member of this chat room",
    "details": {...},
    "request_type": "subscribe"
}
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from core.exceptions import BaseApplicationError


class EventType(str, Enum):
    """Valid outbound event types."""

    CONNECTION_READY = "connection.ready"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    MESSAGE_NEW = "message.new"
    TYPING = "typing"
    READ_RECEIPT = "read_receipt"
    PONG = "pong"
    ERROR = "error"


class InboundType(str, Enum):
    """Valid inbound (client -> server) message types."""

    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    SEND = "chat.send"
    TYPING = "chat.typing"
    READ = "chat.read"
    PING = "ping"


# Current schema version - increment when payload structure changes
SCHEMA_VERSION = 1


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_event(event_type: EventType, payload: dict[str, Any]) -> dict[str, Any]:
    """
    Build a properly structured event.

    Args:
        event_type: The type of event
        payload: Event-specific payload data

    Returns:
        Complete event dict ready for delivery
    """
    return {
        "type": event_type.value,
        "schema_version": SCHEMA_VERSION,
        "timestamp": _now(),
        "payload": payload,
    }


def with_channel(event: dict[str, Any], channel: str) -> dict[str, Any]:
    """Return a copy of event stamped with the channel it is delivered on."""
    return {**event, "channel": channel}


def build_connection_ready_event(user_id: int, connection_id: str) -> dict[str, Any]:
    """Build the first event sent after a successful handshake."""
    return build_event(
        EventType.CONNECTION_READY,
        {"user_id": user_id, "connection_id": connection_id},
    )


def build_subscribed_event(room_id: int, topic: str) -> dict[str, Any]:
    return build_event(EventType.SUBSCRIBED, {"room_id": room_id, "topic": topic})


def build_unsubscribed_event(room_id: int, topic: str) -> dict[str, Any]:
    return build_event(EventType.UNSUBSCRIBED, {"room_id": room_id, "topic": topic})


def build_message_event(room_id: int, message: dict[str, Any]) -> dict[str, Any]:
    """
    Build a message.new event.

    Args:
        room_id: Room the message was appended to
        message: Serialized message (chat.serializers.MessageSerializer)
    """
    return build_event(
        EventType.MESSAGE_NEW,
        {"room_id": room_id, "message": message},
    )


def build_typing_event(
    room_id: int,
    user_id: int,
    username: str,
    display_name: str,
    is_typing: bool = True,
) -> dict[str, Any]:
    """Build a typing event."""
    return build_event(
        EventType.TYPING,
        {
            "room_id": room_id,
            "user_id": user_id,
            "username": username,
            "display_name": display_name,
            "is_typing": is_typing,
        },
    )


def build_read_receipt_event(
    room_id: int,
    reader_id: int,
    message_id: int | None = None,
    updated: int | None = None,
) -> dict[str, Any]:
    """
    Build a read_receipt event.

    message_id is None when the reader marked the whole room as read;
    updated then carries the number of messages that changed.
    """
    payload: dict[str, Any] = {
        "room_id": room_id,
        "reader_id": reader_id,
        "message_id": message_id,
    }
    if updated is not None:
        payload["updated"] = updated
    return build_event(EventType.READ_RECEIPT, payload)


def build_pong_event() -> dict[str, Any]:
    return build_event(EventType.PONG, {})


def build_error_event(
    error: BaseApplicationError,
    request_type: str | None = None,
) -> dict[str, Any]:
    """Build a flat error event from an application error."""
    return {
        "type": EventType.ERROR.value,
        "schema_version": SCHEMA_VERSION,
        "timestamp": _now(),
        "kind": error.kind.value,
        "error_code": error.error_code,
        "error": error.message,
        "details": error.details or {},
        "request_type": request_type,
    }
