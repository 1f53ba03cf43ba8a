"""
WebSocket consumers for the chat application.

This module implements the live connection endpoint: one multiplexed
WebSocket per client, authenticated at handshake, over which the client
subscribes to room topics and sends messages, typing indicators and read
receipts.

Consumers:
    ChatConsumer: Handles the ws/chat/ endpoint

Authentication:
    JWTAuthMiddleware (chat.middleware) attaches the user to
    self.scope["user"]. Unauthenticated handshakes are closed with code
    4001 before accept.

Connection lifecycle (ConnectionState):
    CONNECTING -> AUTHENTICATING -> AUTHENTICATED | REJECTED
    AUTHENTICATED -> DISCONNECTED

Delivery:
    The consumer registers a ChannelConnection in the session registry.
    FanoutService delivers to it through the channel layer
    ({"type": "chat.event", "event": ...}), and chat_event() writes the
    event to the socket.

Message Types (from client):
    {"type": "subscribe", "room_id": 1}
    {"type": "unsubscribe", "room_id": 1}
    {"type": "chat.send", "room_id": 1, "content": "Hello!"}
    {"type": "chat.typing", "room_id": 1, "is_typing": true}
    {"type": "chat.read", "room_id": 1, "message_id": 7}   # or no message_id
    {"type": "ping"}

    Fields may also be nested under "payload".

Message Types (to client):
    connection.ready, subscribed, unsubscribed, message.new, typing,
    read_receipt, pong, error (see chat.events)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from core.exceptions import (
    BaseApplicationError,
    InternalError,
    NotFoundError,
    ValidationError,
)

from chat.authorization import MembershipGuard
from chat.constants import REALTIME_CONFIG, room_topic
from chat.events import (
    InboundType,
    build_connection_ready_event,
    build_error_event,
    build_pong_event,
    build_subscribed_event,
    build_unsubscribed_event,
)
from chat.fanout import FanoutService
from chat.models import Message
from chat.registry import get_session_registry
from chat.serializers import (
    MessageSerializer,
    ReadPayloadSerializer,
    SendPayloadSerializer,
    SubscribePayloadSerializer,
    TypingPayloadSerializer,
)
from chat.services import MessageService

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Lifecycle states of a live connection."""

    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    DISCONNECTED = "disconnected"


class ChannelConnection:
    """
    Delivery handle for one WebSocket connection.

    Implements core.protocols.DeliveryTarget by forwarding events through
    the channel layer to the consumer that owns channel_name.
    """

    def __init__(self, channel_layer, channel_name: str, user_id: int):
        self.channel_layer = channel_layer
        self.connection_id = channel_name
        self.user_id = user_id

    async def deliver(self, event: dict[str, Any]) -> None:
        await self.channel_layer.send(
            self.connection_id,
            {"type": REALTIME_CONFIG.CHANNEL_LAYER_EVENT_TYPE, "event": event},
        )

    def __repr__(self) -> str:
        return f"<ChannelConnection {self.connection_id} user={self.user_id}>"


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat functionality.

    Handles:
        - Handshake authentication
        - Registration in the session registry
        - Room topic subscriptions
        - Sending messages, typing indicators and read receipts

    Attributes:
        state: Current ConnectionState
        connection: ChannelConnection registered for this socket (once
            authenticated)
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.state = ConnectionState.CONNECTING
        self.connection: ChannelConnection | None = None
        self.user = None
        self._handlers = {
            InboundType.SUBSCRIBE.value: self._handle_subscribe,
            InboundType.UNSUBSCRIBE.value: self._handle_unsubscribe,
            InboundType.SEND.value: self._handle_send,
            InboundType.TYPING.value: self._handle_typing,
            InboundType.READ.value: self._handle_read,
            InboundType.PING.value: self._handle_ping,
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self):
        """
        Handle WebSocket handshake.

        Rejects (close 4001, never accepted) when the middleware could not
        authenticate the user. Otherwise accepts, registers the connection
        and sends connection.ready.
        """
        self.state = ConnectionState.AUTHENTICATING
        user = self.scope.get("user")

        if user is None or not user.is_authenticated:
            self.state = ConnectionState.REJECTED
            error = self.scope.get("auth_error")
            logger.warning(
                f"Rejected WebSocket handshake: "
                f"{error.error_code if error else 'NO_CREDENTIALS'}"
            )
            await self.close(code=REALTIME_CONFIG.CLOSE_CODE_UNAUTHENTICATED)
            return

        subprotocols = self.scope.get("subprotocols") or []
        if subprotocols and subprotocols[0] == REALTIME_CONFIG.JWT_SUBPROTOCOL:
            await self.accept(subprotocol=REALTIME_CONFIG.JWT_SUBPROTOCOL)
        else:
            await self.accept()

        self.user = user
        self.connection = ChannelConnection(self.channel_layer, self.channel_name, user.id)
        get_session_registry().register(user.id, self.connection)
        self.state = ConnectionState.AUTHENTICATED

        logger.info(f"User {user.id} connected ({self.channel_name})")
        await self.send_json(build_connection_ready_event(user.id, self.channel_name))

    async def disconnect(self, close_code):
        """Unregister the connection; safe to call more than once."""
        registry = get_session_registry()
        if self.connection is not None and registry.is_registered(self.connection):
            registry.unregister(self.connection)
            logger.info(
                f"User {self.connection.user_id} disconnected "
                f"({self.channel_name}, code {close_code})"
            )
        self.state = ConnectionState.DISCONNECTED

    # =========================================================================
    # Inbound
    # =========================================================================

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        """Decode JSON frames; malformed frames get an error event."""
        if text_data is None:
            await self._send_error(
                ValidationError("Binary frames are not supported", error_code="INVALID_FRAME")
            )
            return
        try:
            content = await self.decode_json(text_data)
        except ValueError:
            await self._send_error(
                ValidationError("Frame is not valid JSON", error_code="MALFORMED_JSON")
            )
            return
        await self.receive_json(content, **kwargs)

    async def receive_json(self, content, **kwargs):
        """
        Dispatch one inbound message.

        Errors are reported to this connection only and never close it.
        """
        if self.state is not ConnectionState.AUTHENTICATED:
            return

        request_type = content.get("type") if isinstance(content, dict) else None
        try:
            if not isinstance(content, dict):
                raise ValidationError(
                    "Message must be a JSON object", error_code="INVALID_MESSAGE"
                )

            handler = self._handlers.get(request_type)
            if handler is None:
                raise ValidationError(
                    f"Unknown message type: {request_type}",
                    error_code="UNKNOWN_TYPE",
                    details={"type": request_type},
                )

            payload = content.get("payload")
            if not isinstance(payload, dict):
                payload = {k: v for k, v in content.items() if k != "type"}

            await handler(payload)
        except BaseApplicationError as e:
            await self._send_error(e, request_type)
        except Exception as e:
            logger.exception(
                f"Unhandled error processing {request_type} for user {self.user.id}"
            )
            await self._send_error(
                InternalError(f"Could not process {request_type}: {e.__class__.__name__}"),
                request_type,
            )

    async def _handle_subscribe(self, payload: dict) -> None:
        room_id = self._validate(SubscribePayloadSerializer, payload)["room_id"]

        failure = await database_sync_to_async(MembershipGuard.require_member)(
            self.user.id, room_id
        )
        if failure is not None:
            failure.raise_for_error()

        topic = room_topic(room_id)
        get_session_registry().subscribe(self.connection, topic)
        logger.debug(f"{self.channel_name} subscribed to {topic}")
        await self.send_json(build_subscribed_event(room_id, topic))

    async def _handle_unsubscribe(self, payload: dict) -> None:
        room_id = self._validate(SubscribePayloadSerializer, payload)["room_id"]

        topic = room_topic(room_id)
        get_session_registry().unsubscribe(self.connection, topic)
        logger.debug(f"{self.channel_name} unsubscribed from {topic}")
        await self.send_json(build_unsubscribed_event(room_id, topic))

    async def _handle_send(self, payload: dict) -> None:
        data = self._validate(SendPayloadSerializer, payload)

        message_data = await self._send_message(data["room_id"], data["content"])
        await FanoutService.publish_message(data["room_id"], self.user.id, message_data)

    async def _handle_typing(self, payload: dict) -> None:
        data = self._validate(TypingPayloadSerializer, payload)

        failure = await database_sync_to_async(MembershipGuard.require_member)(
            self.user.id, data["room_id"]
        )
        if failure is not None:
            failure.raise_for_error()

        await FanoutService.publish_typing(
            data["room_id"],
            self.user.id,
            self.user.username,
            self.user.display_name,
            data["is_typing"],
            origin_connection_id=self.connection.connection_id,
        )

    async def _handle_read(self, payload: dict) -> None:
        data = self._validate(ReadPayloadSerializer, payload)
        room_id = data["room_id"]
        message_id = data.get("message_id")

        if message_id is None:
            updated = await self._mark_all_read(room_id)
            await FanoutService.publish_read_receipt(room_id, self.user.id, None, updated)
        else:
            await self._mark_read(room_id, message_id)
            await FanoutService.publish_read_receipt(room_id, self.user.id, message_id)

    async def _handle_ping(self, payload: dict) -> None:
        await self.send_json(build_pong_event())

    # =========================================================================
    # Outbound
    # =========================================================================

    async def chat_event(self, event):
        """
        Handle chat.event messages from the channel layer.

        Writes the fan-out event to the WebSocket client.
        """
        await self.send_json(event["event"])

    async def _send_error(
        self, error: BaseApplicationError, request_type: str | None = None
    ) -> None:
        await self.send_json(build_error_event(error, request_type))

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _validate(serializer_class, payload: dict) -> dict:
        serializer = serializer_class(data=payload)
        if not serializer.is_valid():
            raise ValidationError(
                "Invalid payload",
                error_code="INVALID_PAYLOAD",
                details={k: [str(e) for e in v] for k, v in serializer.errors.items()},
            )
        return serializer.validated_data

    @database_sync_to_async
    def _send_message(self, room_id: int, content: str) -> dict:
        """Store the message and return its serialized form."""
        result = MessageService.send_message(room_id, self.user, content)
        result.raise_for_error()
        return dict(MessageSerializer(result.data).data)

    @database_sync_to_async
    def _mark_all_read(self, room_id: int) -> int:
        result = MessageService.mark_all_read(room_id, self.user)
        result.raise_for_error()
        return result.data

    @database_sync_to_async
    def _mark_read(self, room_id: int, message_id: int) -> None:
        failure = MembershipGuard.require_member(self.user.id, room_id)
        if failure is not None:
            failure.raise_for_error()

        if not Message.objects.filter(id=message_id, room_id=room_id).exists():
            raise NotFoundError(
                "Message not found in this room",
                error_code="MESSAGE_NOT_FOUND",
                details={"room_id": room_id, "message_id": message_id},
            )
        result = MessageService.mark_read(message_id, self.user)
        result.raise_for_error()
