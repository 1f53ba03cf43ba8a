"""
Chat app for real-time direct messaging.

This app handles:
- Direct chat rooms between exactly two users
- Message sending, history pages and read status
- WebSocket subscriptions, typing indicators and read receipts

Related apps:
    - authentication: User model for room members, JWT verification

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the WebSocket handler.
    See registry.py and fanout.py for live delivery.

Usage:
    from chat.services import ChatRoomService, MessageService

    # Get or create the room for a pair
    room, created = ChatRoomService.get_or_create_direct_room(alice, bob.id).data

    # Send message
    message = MessageService.send_message(room.id, alice, "Hello!").data
"""
