"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Message content limits and history paging
- Real-time delivery (topics, timeouts, close codes)

Page sizes and the delivery timeout can be overridden via Django settings
(CHAT_DEFAULT_PAGE_SIZE, CHAT_MAX_PAGE_SIZE, CHAT_DELIVERY_TIMEOUT_SECONDS);
use the helper functions below to read the effective value.

Import example:
    from chat.constants import MESSAGE_CONFIG, REALTIME_CONFIG
"""

from typing import Final

from django.conf import settings


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits (after trimming whitespace)
    MAX_CONTENT_LENGTH: Final[int] = 5000  # Characters

    # History paging (page numbers are zero-indexed)
    DEFAULT_PAGE_SIZE: Final[int] = 20
    MAX_PAGE_SIZE: Final[int] = 100


# =============================================================================
# Real-time Configuration
# =============================================================================


class REALTIME_CONFIG:
    """Configuration for the WebSocket channel and fan-out."""

    # Per-recipient delivery bound before the delivery counts as dropped
    DELIVERY_TIMEOUT_SECONDS: Final[float] = 5.0

    # Topic carrying every event of one room
    ROOM_TOPIC_PREFIX: Final[str] = "room."

    # Channel name stamped on events delivered to a user's own connections
    PERSONAL_CHANNEL: Final[str] = "user"

    # Channel layer message type forwarded to ChatConsumer.chat_event
    CHANNEL_LAYER_EVENT_TYPE: Final[str] = "chat.event"

    # WebSocket close code for a rejected handshake
    CLOSE_CODE_UNAUTHENTICATED: Final[int] = 4001

    # Subprotocol marker for "Sec-WebSocket-Protocol: jwt, <token>"
    JWT_SUBPROTOCOL: Final[str] = "jwt"


def room_topic(room_id: int) -> str:
    """Topic name for a room, e.g. room.42."""
    return f"{REALTIME_CONFIG.ROOM_TOPIC_PREFIX}{room_id}"


def default_page_size() -> int:
    return getattr(settings, "CHAT_DEFAULT_PAGE_SIZE", MESSAGE_CONFIG.DEFAULT_PAGE_SIZE)


def max_page_size() -> int:
    return getattr(settings, "CHAT_MAX_PAGE_SIZE", MESSAGE_CONFIG.MAX_PAGE_SIZE)


def delivery_timeout() -> float:
    return getattr(
        settings,
        "CHAT_DELIVERY_TIMEOUT_SECONDS",
        REALTIME_CONFIG.DELIVERY_TIMEOUT_SECONDS,
    )
