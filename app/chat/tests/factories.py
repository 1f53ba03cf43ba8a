"""
Factory Boy factories for chat models.

Provides realistic test data generation for:
- ChatRoom: Bare room (no members)
- DirectRoomFactory: Room with its DirectRoomPair and both memberships
- Membership: User participation in a room
- Message: Text message in a room

Usage:
    from chat.tests.factories import DirectRoomFactory, MessageFactory

    # Create a direct room between two new users
    room = DirectRoomFactory()

    # Create a direct room between given users
    room = DirectRoomFactory(members=[alice, bob])

    # Create a message in a room
    message = MessageFactory(room=room, sender=alice)
"""

import factory

from authentication.tests.factories import UserFactory
from chat.models import ChatRoom, DirectRoomPair, Membership, Message, MessageStatus


class ChatRoomFactory(factory.django.DjangoModelFactory):
    """Factory for a ChatRoom without members."""

    class Meta:
        model = ChatRoom
        skip_postgeneration_save = True


class DirectRoomFactory(ChatRoomFactory):
    """
    Factory for a complete direct room.

    Creates the DirectRoomPair and both memberships. Pass members=[a, b]
    to choose the users; two new users are created otherwise.
    """

    @factory.post_generation
    def members(self, create, extracted, **kwargs):
        if not create:
            return

        users = list(extracted) if extracted else [UserFactory(), UserFactory()]
        user_lower_id, user_higher_id = DirectRoomPair.canonical(users[0].id, users[1].id)
        DirectRoomPair.objects.create(
            room=self, user_lower_id=user_lower_id, user_higher_id=user_higher_id
        )
        Membership.objects.bulk_create(
            [Membership(room=self, user=user) for user in users]
        )


class MembershipFactory(factory.django.DjangoModelFactory):
    """Factory for Membership model."""

    class Meta:
        model = Membership

    room = factory.SubFactory(ChatRoomFactory)
    user = factory.SubFactory(UserFactory)


class MessageFactory(factory.django.DjangoModelFactory):
    """
    Factory for Message model.

    By default the sender is the first member of the room.

    Examples:
        message = MessageFactory(room=room, sender=alice)
        read = MessageFactory(room=room, sender=bob, status=MessageStatus.READ)
    """

    class Meta:
        model = Message

    room = factory.SubFactory(DirectRoomFactory)
    sender = factory.LazyAttribute(
        lambda o: o.room.memberships.order_by("user_id").first().user
    )
    content = factory.Sequence(lambda n: f"Message {n}")
    status = MessageStatus.SENT
