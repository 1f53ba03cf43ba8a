"""
Delivery fan-out engine for real-time chat events.

Resolves the live recipients of an event from the session registry and
pushes one copy per (connection, channel) pair.

Routing:
    message.new   -> subscribers of "room.{id}" (channel "room.{id}")
                     + every live connection of every other member
                       (channel "user"), subscribed or not
    typing        -> subscribers of "room.{id}" except the acting connection
    read_receipt  -> subscribers of "room.{id}", only after the status
                     change was committed

Design decisions:
- Per-recipient isolation: each delivery is its own task bounded by
  CHAT_DELIVERY_TIMEOUT_SECONDS; a slow or dead connection is logged and
  counted as dropped, never raised, and never delays the others
- Fire-and-forget from the caller's point of view: the message is already
  durable, a client that missed an event re-reads history
- No offline queue: connections that are gone simply do not receive
- Recipients reached on their personal channel have the message advanced
  to DELIVERED

Usage:
    # From async code (WebSocket consumer)
    report = await FanoutService.publish_message(room.id, sender.id, message_data)

    # From sync code (DRF views), typically inside transaction.on_commit
    FanoutService.publish_message_sync(room.id, sender.id, message_data)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async

from core.exceptions import StorageError
from core.services import BaseService

from chat.authorization import MembershipGuard
from chat.constants import REALTIME_CONFIG, delivery_timeout, room_topic
from chat.events import (
    build_message_event,
    build_read_receipt_event,
    build_typing_event,
    with_channel,
)
from chat.registry import SessionRegistry, get_session_registry
from chat.services import MessageService

if TYPE_CHECKING:
    from core.protocols import DeliveryTarget

logger = logging.getLogger(__name__)


@dataclass
class DeliveryReport:
    """
    Outcome of one fan-out.

    delivered and dropped hold one connection id per delivered/dropped copy;
    personal_user_ids holds the users reached on their personal channel.
    """

    delivered: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    personal_user_ids: set[int] = field(default_factory=set)

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.dropped)


class FanoutService(BaseService):
    """
    Pushes chat events to live connections.

    All publish methods accept an optional registry for tests; the
    process-wide registry is used otherwise.
    """

    # =========================================================================
    # Async API
    # =========================================================================

    @classmethod
    async def publish_message(
        cls,
        room_id: int,
        sender_id: int,
        message: dict[str, Any],
        registry: SessionRegistry | None = None,
    ) -> DeliveryReport:
        """
        Deliver a newly stored message to the room topic and to the other
        members' personal channels.

        Args:
            room_id: Room the message belongs to
            sender_id: Author; never receives a personal copy
            message: Serialized message (must contain "id")
        """
        member_ids = await database_sync_to_async(MembershipGuard.member_ids)(room_id)
        report = await cls._fan_out_message(
            room_id, sender_id, message, member_ids, registry
        )
        await database_sync_to_async(cls._record_delivered)(message["id"], report)
        return report

    @classmethod
    async def _fan_out_message(
        cls,
        room_id: int,
        sender_id: int,
        message: dict[str, Any],
        member_ids: list[int],
        registry: SessionRegistry | None = None,
    ) -> DeliveryReport:
        registry = registry or get_session_registry()
        topic = room_topic(room_id)
        event = build_message_event(room_id, message)

        plan: list[tuple[DeliveryTarget, str]] = [
            (target, topic) for target in registry.subscribers(topic)
        ]
        for member_id in member_ids:
            if member_id == sender_id:
                continue
            plan.extend(
                (target, REALTIME_CONFIG.PERSONAL_CHANNEL)
                for target in registry.connections_for(member_id)
            )

        report = await cls._deliver_all(plan, event)

        cls.get_logger().debug(
            f"Fan-out of message {message['id']} in room {room_id}: "
            f"{len(report.delivered)}/{report.attempted} delivered, "
            f"{len(report.dropped)} dropped"
        )
        return report

    @classmethod
    def _record_delivered(cls, message_id: int, report: DeliveryReport) -> None:
        """Advance the message to DELIVERED for users reached on their personal channel."""
        for recipient_id in report.personal_user_ids:
            try:
                MessageService.mark_delivered([message_id], recipient_id)
            except StorageError as e:
                # The event already went out; status stays SENT until read
                cls.get_logger().error(
                    f"Could not mark message {message_id} delivered "
                    f"for user {recipient_id}: {e}"
                )

    @classmethod
    async def publish_typing(
        cls,
        room_id: int,
        user_id: int,
        username: str,
        display_name: str,
        is_typing: bool,
        origin_connection_id: str | None = None,
        registry: SessionRegistry | None = None,
    ) -> DeliveryReport:
        """Deliver a typing indicator to the room topic, skipping the origin."""
        registry = registry or get_session_registry()
        topic = room_topic(room_id)
        event = build_typing_event(room_id, user_id, username, display_name, is_typing)

        plan = [
            (target, topic)
            for target in registry.subscribers(topic)
            if target.connection_id != origin_connection_id
        ]
        return await cls._deliver_all(plan, event)

    @classmethod
    async def publish_read_receipt(
        cls,
        room_id: int,
        reader_id: int,
        message_id: int | None = None,
        updated: int | None = None,
        registry: SessionRegistry | None = None,
    ) -> DeliveryReport:
        """
        Deliver a read receipt to the room topic.

        Call only after the read status change has been committed.
        """
        registry = registry or get_session_registry()
        topic = room_topic(room_id)
        event = build_read_receipt_event(room_id, reader_id, message_id, updated)

        plan = [(target, topic) for target in registry.subscribers(topic)]
        return await cls._deliver_all(plan, event)

    # =========================================================================
    # Sync bridge (request layer)
    # =========================================================================

    @classmethod
    def publish_message_sync(
        cls,
        room_id: int,
        sender_id: int,
        message: dict[str, Any],
        registry: SessionRegistry | None = None,
    ) -> DeliveryReport:
        """
        publish_message for sync callers.

        Database work stays on the calling thread; only delivery runs on
        the event loop.
        """
        member_ids = MembershipGuard.member_ids(room_id)
        report = async_to_sync(cls._fan_out_message)(
            room_id, sender_id, message, member_ids, registry
        )
        cls._record_delivered(message["id"], report)
        return report

    @classmethod
    def publish_read_receipt_sync(cls, *args, **kwargs) -> DeliveryReport:
        return async_to_sync(cls.publish_read_receipt)(*args, **kwargs)

    # =========================================================================
    # Delivery
    # =========================================================================

    @classmethod
    async def _deliver_all(
        cls,
        plan: list[tuple[DeliveryTarget, str]],
        event: dict[str, Any],
    ) -> DeliveryReport:
        report = DeliveryReport()
        if not plan:
            return report

        timeout = delivery_timeout()
        outcomes = await asyncio.gather(
            *(
                cls._deliver_one(target, with_channel(event, channel), timeout)
                for target, channel in plan
            )
        )

        for (target, channel), ok in zip(plan, outcomes):
            if ok:
                report.delivered.append(target.connection_id)
                if channel == REALTIME_CONFIG.PERSONAL_CHANNEL:
                    report.personal_user_ids.add(target.user_id)
            else:
                report.dropped.append(target.connection_id)
        return report

    @classmethod
    async def _deliver_one(
        cls,
        target: DeliveryTarget,
        event: dict[str, Any],
        timeout: float,
    ) -> bool:
        """Deliver one copy; failures are logged and reported as False."""
        try:
            await asyncio.wait_for(target.deliver(event), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Dropped {event['type']} for connection {target.connection_id} "
                f"(user {target.user_id}): timed out after {timeout}s"
            )
            return False
        except Exception as e:
            logger.warning(
                f"Dropped {event['type']} for connection {target.connection_id} "
                f"(user {target.user_id}): {e.__class__.__name__}: {e}"
            )
            return False
        return True
