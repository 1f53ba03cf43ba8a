"""
Tests for the delivery fan-out engine.

This module tests:
- message.new routing (room topic + personal channels)
- typing and read_receipt routing (room topic only)
- Per-recipient isolation (failures and timeouts are dropped, not raised)
- DELIVERED status on personal-channel delivery

Delivery targets are RecordingConnection instances (see conftest.py)
registered in a SessionRegistry.
"""

import logging
from unittest.mock import patch

import pytest

from core.exceptions import StorageError

from chat.constants import room_topic
from chat.fanout import FanoutService
from chat.models import Message, MessageStatus
from chat.registry import SessionRegistry
from chat.serializers import MessageSerializer
from chat.services import MessageService


def _send(room, sender, content="hello"):
    message = MessageService.send_message(room.id, sender, content).data
    return message, dict(MessageSerializer(message).data)


# =============================================================================
# message.new
# =============================================================================


class TestPublishMessage:
    """Tests for FanoutService.publish_message / publish_message_sync."""

    def test_topic_subscribers_and_personal_channels_receive(
        self, room, alice, bob, carol, session_registry, make_connection
    ):
        """
        Every topic subscriber and every live connection of the other member
        gets one copy per channel.

        Why it matters: A recipient who has not opened the room yet must
        still be told about the message.
        """
        alice_conn = make_connection(alice.id)
        bob_phone = make_connection(bob.id)
        bob_laptop = make_connection(bob.id)
        watcher = make_connection(carol.id)
        for conn in (alice_conn, bob_phone, bob_laptop, watcher):
            session_registry.register(conn.user_id, conn)
        topic = room_topic(room.id)
        for conn in (alice_conn, bob_phone, watcher):
            session_registry.subscribe(conn, topic)

        message, data = _send(room, alice)
        report = FanoutService.publish_message_sync(room.id, alice.id, data)

        assert sorted(e["channel"] for e in bob_phone.events) == [topic, "user"]
        assert [e["channel"] for e in bob_laptop.events] == ["user"]
        assert [e["channel"] for e in alice_conn.events] == [topic]
        assert [e["channel"] for e in watcher.events] == [topic]
        assert report.attempted == 5
        assert report.dropped == []
        assert report.personal_user_ids == {bob.id}

        event = bob_laptop.events[0]
        assert event["type"] == "message.new"
        assert event["schema_version"] == 1
        assert event["payload"]["room_id"] == room.id
        assert event["payload"]["message"]["id"] == message.id
        assert event["payload"]["message"]["content"] == "hello"

    def test_sender_gets_no_personal_copy(
        self, room, alice, session_registry, make_connection
    ):
        alice_conn = make_connection(alice.id)
        session_registry.register(alice.id, alice_conn)

        _, data = _send(room, alice)
        FanoutService.publish_message_sync(room.id, alice.id, data)

        assert alice_conn.events == []

    def test_personal_delivery_marks_delivered(
        self, room, alice, bob, session_registry, make_connection
    ):
        session_registry.register(bob.id, make_connection(bob.id))

        message, data = _send(room, alice)
        FanoutService.publish_message_sync(room.id, alice.id, data)

        message.refresh_from_db()
        assert message.status == MessageStatus.DELIVERED

    def test_topic_only_delivery_leaves_status_sent(
        self, room, alice, bob, carol, session_registry, make_connection
    ):
        watcher = make_connection(carol.id)
        session_registry.register(carol.id, watcher)
        session_registry.subscribe(watcher, room_topic(room.id))

        message, data = _send(room, alice)
        FanoutService.publish_message_sync(room.id, alice.id, data)

        message.refresh_from_db()
        assert message.status == MessageStatus.SENT

    def test_offline_recipient_is_simply_skipped(self, room, alice, bob):
        message, data = _send(room, alice)

        report = FanoutService.publish_message_sync(room.id, alice.id, data)

        assert report.attempted == 0
        message.refresh_from_db()
        assert message.status == MessageStatus.SENT

    def test_failing_and_slow_connections_do_not_block_others(
        self, room, alice, bob, session_registry, make_connection, settings, caplog
    ):
        """
        One broken or slow connection never affects the others.

        Why it matters: Delivery is per recipient; a dead socket must not
        stall the room.
        """
        settings.CHAT_DELIVERY_TIMEOUT_SECONDS = 0.05
        healthy = make_connection(bob.id)
        broken = make_connection(bob.id, error=ConnectionError("socket gone"))
        slow = make_connection(bob.id, delay=1.0)
        for conn in (healthy, broken, slow):
            session_registry.register(bob.id, conn)

        _, data = _send(room, alice)
        with caplog.at_level(logging.DEBUG, logger="chat.fanout"):
            report = FanoutService.publish_message_sync(room.id, alice.id, data)

        assert report.delivered == [healthy.connection_id]
        assert sorted(report.dropped) == sorted([broken.connection_id, slow.connection_id])
        assert len(healthy.events) == 1
        assert slow.events == []
        assert "1/3 delivered, 2 dropped" in caplog.text

    def test_all_personal_deliveries_failed_leaves_status_sent(
        self, room, alice, bob, session_registry, make_connection
    ):
        session_registry.register(
            bob.id, make_connection(bob.id, error=RuntimeError("boom"))
        )

        message, data = _send(room, alice)
        FanoutService.publish_message_sync(room.id, alice.id, data)

        message.refresh_from_db()
        assert message.status == MessageStatus.SENT

    def test_storage_fault_while_marking_delivered_is_logged(
        self, room, alice, bob, session_registry, make_connection, caplog
    ):
        conn = make_connection(bob.id)
        session_registry.register(bob.id, conn)
        _, data = _send(room, alice)

        with patch.object(
            MessageService, "mark_delivered", side_effect=StorageError("down")
        ), caplog.at_level(logging.ERROR):
            report = FanoutService.publish_message_sync(room.id, alice.id, data)

        assert report.delivered == [conn.connection_id]
        assert "Could not mark message" in caplog.text

    @pytest.mark.asyncio
    @pytest.mark.django_db(transaction=True)
    async def test_async_publish_message(self, room, alice, bob, make_connection):
        registry = SessionRegistry()
        conn = make_connection(bob.id)
        registry.register(bob.id, conn)
        message = await Message.objects.acreate(room=room, sender=alice, content="hi")

        report = await FanoutService.publish_message(
            room.id, alice.id, {"id": message.id, "content": "hi"}, registry=registry
        )

        assert report.delivered == [conn.connection_id]
        await message.arefresh_from_db()
        assert message.status == MessageStatus.DELIVERED


# =============================================================================
# typing / read_receipt
# =============================================================================


class TestPublishTyping:
    """Tests for FanoutService.publish_typing."""

    @pytest.mark.asyncio
    async def test_topic_subscribers_except_origin(self, make_connection):
        registry = SessionRegistry()
        origin = make_connection(1)
        peer = make_connection(2)
        own_other_device = make_connection(1)
        unsubscribed = make_connection(2)
        for conn in (origin, peer, own_other_device, unsubscribed):
            registry.register(conn.user_id, conn)
        for conn in (origin, peer, own_other_device):
            registry.subscribe(conn, room_topic(7))

        report = await FanoutService.publish_typing(
            7, 1, "alice", "Alice", True,
            origin_connection_id=origin.connection_id,
            registry=registry,
        )

        assert origin.events == []
        assert unsubscribed.events == []
        assert report.attempted == 2
        payload = peer.events[0]["payload"]
        assert peer.events[0]["type"] == "typing"
        assert payload == {
            "room_id": 7,
            "user_id": 1,
            "username": "alice",
            "display_name": "Alice",
            "is_typing": True,
        }
        assert own_other_device.types() == ["typing"]


class TestPublishReadReceipt:
    """Tests for FanoutService.publish_read_receipt."""

    @pytest.mark.asyncio
    async def test_single_message_receipt(self, make_connection):
        registry = SessionRegistry()
        sender_conn = make_connection(1)
        registry.register(1, sender_conn)
        registry.subscribe(sender_conn, room_topic(3))

        await FanoutService.publish_read_receipt(3, 2, message_id=11, registry=registry)

        event = sender_conn.events[0]
        assert event["type"] == "read_receipt"
        assert event["channel"] == room_topic(3)
        assert event["payload"] == {"room_id": 3, "reader_id": 2, "message_id": 11}

    def test_room_receipt_via_sync_bridge(self, make_connection):
        registry = SessionRegistry()
        conn = make_connection(1)
        registry.register(1, conn)
        registry.subscribe(conn, room_topic(3))

        FanoutService.publish_read_receipt_sync(3, 2, None, 4, registry=registry)

        assert conn.events[0]["payload"] == {
            "room_id": 3,
            "reader_id": 2,
            "message_id": None,
            "updated": 4,
        }
