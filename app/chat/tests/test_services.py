"""
Tests for chat service layer business logic.

This module tests:
- ChatRoomService: get-or-create direct room, list, get
- MessageService: send, history pages, read/delivered status

Test Organization:
    - Each service method has its own test class
    - Tests use descriptive names following: test_<scenario>_<expected_outcome>

Testing Philosophy:
    Tests focus on observable behavior:
    - ServiceResult success/failure states and error kinds
    - Error codes for specific failure modes
    - Database state changes
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.utils import timezone
from freezegun import freeze_time

from core.exceptions import ErrorKind, StorageError

from authentication.tests.factories import UserFactory
from chat.models import ChatRoom, DirectRoomPair, Membership, Message, MessageStatus
from chat.services import ChatRoomService, MessageService
from chat.tests.factories import DirectRoomFactory, MessageFactory


# =============================================================================
# ChatRoomService.get_or_create_direct_room
# =============================================================================


class TestGetOrCreateDirectRoom:
    """
    Tests for ChatRoomService.get_or_create_direct_room().

    Verifies:
    - Creating a room with both memberships
    - Returning the existing room for the same pair, in either order
    - Rejecting self-chat and unknown users
    """

    def test_creates_room_with_two_members(self, alice, bob):
        result = ChatRoomService.get_or_create_direct_room(alice, bob.id)

        assert result.success is True
        room, created = result.data
        assert created is True
        assert set(
            Membership.objects.filter(room=room).values_list("user_id", flat=True)
        ) == {alice.id, bob.id}
        assert DirectRoomPair.objects.filter(room=room).exists()

    def test_returns_existing_room_for_same_pair(self, alice, bob):
        """
        Repeated calls return the same room.

        Why it matters: Users must always land in the same conversation.
        """
        first, _ = ChatRoomService.get_or_create_direct_room(alice, bob.id).data
        second, created = ChatRoomService.get_or_create_direct_room(alice, bob.id).data

        assert second.id == first.id
        assert created is False
        assert ChatRoom.objects.count() == 1

    def test_returns_existing_room_regardless_of_initiator(self, alice, bob):
        first, _ = ChatRoomService.get_or_create_direct_room(alice, bob.id).data
        second, created = ChatRoomService.get_or_create_direct_room(bob, alice.id).data

        assert second.id == first.id
        assert created is False

    def test_self_chat_rejected(self, alice):
        """
        Cannot create a room with yourself.

        Why it matters: A room always has exactly two distinct members.
        """
        result = ChatRoomService.get_or_create_direct_room(alice, alice.id)

        assert result.success is False
        assert result.error_code == "SAME_USER"
        assert result.error_kind is ErrorKind.VALIDATION
        assert ChatRoom.objects.count() == 0

    def test_unknown_target_is_not_found(self, alice):
        result = ChatRoomService.get_or_create_direct_room(alice, 999999)

        assert result.success is False
        assert result.error_code == "USER_NOT_FOUND"
        assert result.error_kind is ErrorKind.NOT_FOUND

    def test_inactive_target_is_not_found(self, alice):
        ghost = UserFactory(is_active=False)

        result = ChatRoomService.get_or_create_direct_room(alice, ghost.id)

        assert result.error_code == "USER_NOT_FOUND"

    def test_lost_creation_race_returns_winner_room(self, alice, bob):
        """
        A concurrent creator that commits first wins; we return its room.

        Simulated by hiding the existing pair from the first lookup so the
        insert hits the unique constraint.
        """
        winner = DirectRoomFactory(members=[alice, bob])
        real_find_pair = ChatRoomService._find_pair

        with patch.object(
            ChatRoomService,
            "_find_pair",
            side_effect=[None, real_find_pair(*DirectRoomPair.canonical(alice.id, bob.id))],
        ):
            result = ChatRoomService.get_or_create_direct_room(alice, bob.id)

        room, created = result.data
        assert room.id == winner.id
        assert created is False
        assert ChatRoom.objects.count() == 1


# =============================================================================
# ChatRoomService.list_rooms_for_user / get_room
# =============================================================================


class TestListAndGetRooms:
    """Tests for room listing and detail."""

    def test_lists_only_member_rooms_newest_first(self, alice, bob, carol):
        with freeze_time("2024-01-01 10:00:00"):
            older = DirectRoomFactory(members=[alice, bob])
        with freeze_time("2024-01-02 10:00:00"):
            newer = DirectRoomFactory(members=[alice, carol])
        DirectRoomFactory(members=[bob, carol])

        result = ChatRoomService.list_rooms_for_user(alice)

        assert [r.id for r in result.data] == [newer.id, older.id]

    def test_user_without_rooms_gets_empty_list(self, carol):
        assert ChatRoomService.list_rooms_for_user(carol).data == []

    def test_get_room_for_member(self, room, alice):
        result = ChatRoomService.get_room(room.id, alice)

        assert result.success is True
        assert result.data.id == room.id

    def test_get_room_for_non_member_is_forbidden(self, room, carol):
        result = ChatRoomService.get_room(room.id, carol)

        assert result.success is False
        assert result.error_code == "NOT_MEMBER"
        assert result.error_kind is ErrorKind.FORBIDDEN

    def test_get_missing_room_is_not_found(self, alice):
        result = ChatRoomService.get_room(999999, alice)

        assert result.error_code == "ROOM_NOT_FOUND"
        assert result.error_kind is ErrorKind.NOT_FOUND

    def test_other_member_and_last_message(self, room, alice, bob):
        MessageFactory(room=room, sender=alice, content="first")
        last = MessageFactory(room=room, sender=bob, content="second")

        assert ChatRoomService.get_other_member(room, alice) == bob
        assert ChatRoomService.get_last_message(room) == last

    def test_last_message_of_empty_room_is_none(self, room):
        assert ChatRoomService.get_last_message(room) is None


# =============================================================================
# MessageService.send_message
# =============================================================================


class TestSendMessage:
    """Tests for MessageService.send_message()."""

    def test_stores_trimmed_message_as_sent(self, room, alice):
        result = MessageService.send_message(room.id, alice, "  hello  ")

        assert result.success is True
        message = Message.objects.get(id=result.data.id)
        assert message.content == "hello"
        assert message.status == MessageStatus.SENT
        assert message.sender == alice

    def test_whitespace_only_content_rejected(self, room, alice):
        result = MessageService.send_message(room.id, alice, "   \n\t ")

        assert result.success is False
        assert result.error_code == "EMPTY_CONTENT"
        assert "content" in result.errors
        assert Message.objects.count() == 0

    def test_content_at_limit_accepted(self, room, alice):
        result = MessageService.send_message(room.id, alice, "x" * 5000)

        assert result.success is True

    def test_content_over_limit_rejected(self, room, alice):
        result = MessageService.send_message(room.id, alice, "x" * 5001)

        assert result.success is False
        assert result.error_code == "CONTENT_TOO_LONG"
        assert result.error_kind is ErrorKind.VALIDATION

    def test_non_member_cannot_send(self, room, carol):
        """
        Only members can write to a room.

        Why it matters: Rooms are private between their two members.
        """
        result = MessageService.send_message(room.id, carol, "intrusion")

        assert result.success is False
        assert result.error_code == "NOT_MEMBER"
        assert Message.objects.count() == 0

    def test_membership_checked_before_content(self, room, carol):
        result = MessageService.send_message(room.id, carol, "")

        assert result.error_code == "NOT_MEMBER"

    def test_missing_room_is_not_found(self, alice):
        result = MessageService.send_message(999999, alice, "hello")

        assert result.error_code == "ROOM_NOT_FOUND"

    def test_created_at_never_before_newest_message(self, room, alice, bob):
        """
        created_at is non-decreasing within a room.

        Why it matters: History order must match append order even if the
        clock steps backwards.
        """
        future = timezone.now() + timedelta(hours=1)
        existing = MessageFactory(room=room, sender=bob, created_at=future)

        result = MessageService.send_message(room.id, alice, "later")

        assert result.data.created_at >= existing.created_at
        newest = MessageService.get_messages(room.id, alice, page=0, size=1).data
        assert newest.items[0].id == result.data.id

    def test_database_failure_raises_storage_error(self, room, alice):
        with patch.object(Message.objects, "create", side_effect=DatabaseError("down")):
            with pytest.raises(StorageError):
                MessageService.send_message(room.id, alice, "hello")


# =============================================================================
# MessageService.get_messages
# =============================================================================


class TestGetMessages:
    """Tests for MessageService.get_messages()."""

    @pytest.fixture
    def history(self, room, alice, bob):
        """25 messages, oldest first in the returned list."""
        base = timezone.now() - timedelta(minutes=30)
        return [
            MessageFactory(
                room=room,
                sender=alice if i % 2 == 0 else bob,
                created_at=base + timedelta(seconds=i),
            )
            for i in range(25)
        ]

    def test_first_page_is_newest_first(self, room, alice, history):
        page = MessageService.get_messages(room.id, alice, page=0, size=10).data

        assert [m.id for m in page.items] == [m.id for m in reversed(history)][:10]
        assert page.total_count == 25
        assert page.total_pages == 3
        assert page.is_first is True
        assert page.is_last is False

    def test_pages_partition_history(self, room, alice, history):
        """
        Consecutive pages neither overlap nor skip messages.

        Why it matters: Clients scroll back through history page by page.
        """
        ids = []
        for page_number in range(3):
            page = MessageService.get_messages(room.id, alice, page=page_number, size=10).data
            ids.extend(m.id for m in page.items)

        assert ids == [m.id for m in reversed(history)]

    def test_last_page_is_partial(self, room, alice, history):
        page = MessageService.get_messages(room.id, alice, page=2, size=10).data

        assert len(page.items) == 5
        assert page.is_last is True

    def test_page_past_end_is_empty(self, room, alice, history):
        page = MessageService.get_messages(room.id, alice, page=7, size=10).data

        assert page.items == []
        assert page.is_empty is True
        assert page.total_count == 25

    def test_default_page_size_is_twenty(self, room, alice, history):
        page = MessageService.get_messages(room.id, alice).data

        assert page.size == 20
        assert len(page.items) == 20

    def test_oversized_page_is_clamped(self, room, alice, history):
        page = MessageService.get_messages(room.id, alice, page=0, size=500).data

        assert page.size == 100
        assert len(page.items) == 25

    def test_negative_page_rejected(self, room, alice):
        result = MessageService.get_messages(room.id, alice, page=-1, size=10)

        assert result.error_code == "INVALID_PAGE"
        assert result.error_kind is ErrorKind.VALIDATION

    def test_zero_size_rejected(self, room, alice):
        result = MessageService.get_messages(room.id, alice, page=0, size=0)

        assert result.error_code == "INVALID_PAGE_SIZE"

    def test_non_member_cannot_read(self, room, carol, history):
        result = MessageService.get_messages(room.id, carol)

        assert result.error_code == "NOT_MEMBER"

    def test_empty_room(self, room, alice):
        page = MessageService.get_messages(room.id, alice).data

        assert page.items == []
        assert page.total_pages == 0
        assert page.is_first is True


# =============================================================================
# MessageService.mark_read / mark_all_read / mark_delivered
# =============================================================================


class TestMarkRead:
    """Tests for MessageService.mark_read()."""

    def test_recipient_marks_message_read(self, room, alice, bob):
        message = MessageFactory(room=room, sender=alice)

        result = MessageService.mark_read(message.id, bob)

        assert result.success is True
        message.refresh_from_db()
        assert message.status == MessageStatus.READ

    def test_marking_read_twice_is_idempotent(self, room, alice, bob):
        message = MessageFactory(room=room, sender=alice, status=MessageStatus.READ)

        result = MessageService.mark_read(message.id, bob)

        assert result.success is True
        assert result.data.status == MessageStatus.READ

    def test_sender_cannot_mark_own_message(self, room, alice):
        """
        The sender cannot mark their own message as read.

        Why it matters: READ reflects the recipient having seen it.
        """
        message = MessageFactory(room=room, sender=alice)

        result = MessageService.mark_read(message.id, alice)

        assert result.success is False
        assert result.error_code == "OWN_MESSAGE"
        message.refresh_from_db()
        assert message.status == MessageStatus.SENT

    def test_non_member_cannot_mark_read(self, room, alice, carol):
        message = MessageFactory(room=room, sender=alice)

        result = MessageService.mark_read(message.id, carol)

        assert result.error_code == "NOT_MEMBER"

    def test_missing_message_is_not_found(self, alice):
        result = MessageService.mark_read(999999, alice)

        assert result.error_code == "MESSAGE_NOT_FOUND"
        assert result.error_kind is ErrorKind.NOT_FOUND


class TestMarkAllRead:
    """Tests for MessageService.mark_all_read()."""

    def test_marks_only_received_unread_messages(self, room, alice, bob):
        MessageFactory(room=room, sender=alice)
        MessageFactory(room=room, sender=alice, status=MessageStatus.DELIVERED)
        MessageFactory(room=room, sender=alice, status=MessageStatus.READ)
        own = MessageFactory(room=room, sender=bob)

        result = MessageService.mark_all_read(room.id, bob)

        assert result.data == 2
        assert not Message.objects.filter(room=room, sender=alice).exclude(
            status=MessageStatus.READ
        ).exists()
        own.refresh_from_db()
        assert own.status == MessageStatus.SENT

    def test_second_call_updates_nothing(self, room, alice, bob):
        MessageFactory(room=room, sender=alice)
        MessageService.mark_all_read(room.id, bob)

        assert MessageService.mark_all_read(room.id, bob).data == 0

    def test_status_only_moves_forward(self, room, alice, bob):
        """
        SENT and DELIVERED advance to READ; READ rows are not rewritten.

        Why it matters: Status is forward-only, and the count reports
        only messages that actually changed.
        """
        sent = MessageFactory(room=room, sender=alice, status=MessageStatus.SENT)
        delivered = MessageFactory(room=room, sender=alice, status=MessageStatus.DELIVERED)
        read = MessageFactory(room=room, sender=alice, status=MessageStatus.READ)
        read_updated_at = read.updated_at

        result = MessageService.mark_all_read(room.id, bob)

        assert result.data == 2
        for message in (sent, delivered, read):
            message.refresh_from_db()
            assert message.status == MessageStatus.READ
        assert read.updated_at == read_updated_at

        # A late delivery report cannot pull them back
        assert MessageService.mark_delivered([sent.id, delivered.id], bob.id) == 0
        sent.refresh_from_db()
        assert sent.status == MessageStatus.READ

    def test_non_member_rejected(self, room, carol):
        result = MessageService.mark_all_read(room.id, carol)

        assert result.error_code == "NOT_MEMBER"


class TestMarkDelivered:
    """Tests for MessageService.mark_delivered()."""

    def test_advances_sent_to_delivered(self, room, alice, bob):
        message = MessageFactory(room=room, sender=alice)

        assert MessageService.mark_delivered([message.id], bob.id) == 1
        message.refresh_from_db()
        assert message.status == MessageStatus.DELIVERED

    def test_never_downgrades_read(self, room, alice, bob):
        message = MessageFactory(room=room, sender=alice, status=MessageStatus.READ)

        assert MessageService.mark_delivered([message.id], bob.id) == 0
        message.refresh_from_db()
        assert message.status == MessageStatus.READ

    def test_ignores_own_messages_and_foreign_rooms(self, room, alice, bob, carol):
        own = MessageFactory(room=room, sender=bob)
        other_room = DirectRoomFactory(members=[alice, carol])
        foreign = MessageFactory(room=other_room, sender=alice)

        assert MessageService.mark_delivered([own.id, foreign.id], bob.id) == 0

    def test_empty_id_list(self, bob):
        assert MessageService.mark_delivered([], bob.id) == 0
