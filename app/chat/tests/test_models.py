"""
Tests for chat models.

This module tests:
- ChatRoom / DirectRoomPair / Membership: database constraints
- Message: defaults and ordering
"""

from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone

from authentication.tests.factories import UserFactory
from chat.models import ChatRoom, DirectRoomPair, Membership, Message, MessageStatus
from chat.tests.factories import ChatRoomFactory, DirectRoomFactory, MessageFactory


# =============================================================================
# Room Constraints
# =============================================================================


class TestDirectRoomPair:
    """Tests for DirectRoomPair constraints."""

    def test_canonical_orders_ids(self):
        assert DirectRoomPair.canonical(9, 3) == (3, 9)
        assert DirectRoomPair.canonical(3, 9) == (3, 9)

    def test_one_room_per_pair(self, db):
        """
        A second pair row for the same users violates the unique constraint.

        Why it matters: This is the last line of defense against
        concurrent creators making two rooms for one pair.
        """
        user_a, user_b = UserFactory(), UserFactory()
        DirectRoomFactory(members=[user_a, user_b])
        lower, higher = DirectRoomPair.canonical(user_a.id, user_b.id)

        with pytest.raises(IntegrityError):
            DirectRoomPair.objects.create(
                room=ChatRoomFactory(), user_lower_id=lower, user_higher_id=higher
            )

    def test_non_canonical_order_rejected(self, db):
        user_a, user_b = UserFactory(), UserFactory()
        lower, higher = DirectRoomPair.canonical(user_a.id, user_b.id)

        with pytest.raises(IntegrityError):
            DirectRoomPair.objects.create(
                room=ChatRoomFactory(), user_lower_id=higher, user_higher_id=lower
            )


class TestMembership:
    """Tests for Membership constraints."""

    def test_direct_room_has_two_members(self, room, alice, bob):
        assert set(room.members.values_list("id", flat=True)) == {alice.id, bob.id}

    def test_duplicate_membership_rejected(self, room, alice):
        with pytest.raises(IntegrityError):
            Membership.objects.create(room=room, user=alice)

    def test_user_rooms_reverse_relation(self, room, alice):
        assert list(alice.chat_rooms.all()) == [room]


# =============================================================================
# Message
# =============================================================================


class TestMessage:
    """Tests for the Message model."""

    def test_default_status_is_sent(self, room, alice):
        message = Message.objects.create(room=room, sender=alice, content="hi")

        assert message.status == MessageStatus.SENT

    def test_default_ordering_newest_first_with_id_tiebreak(self, room, alice):
        now = timezone.now()
        older = MessageFactory(room=room, sender=alice, created_at=now - timedelta(seconds=1))
        tie_a = MessageFactory(room=room, sender=alice, created_at=now)
        tie_b = MessageFactory(room=room, sender=alice, created_at=now)

        assert list(Message.objects.filter(room=room)) == [tie_b, tie_a, older]

    def test_str_truncates_long_content(self, room, alice):
        message = MessageFactory(room=room, sender=alice, content="x" * 80)

        assert str(message).endswith("x" * 50 + "...")

    def test_room_str(self, db):
        room = ChatRoom.objects.create()

        assert str(room) == f"ChatRoom {room.id}"
