"""
Tests for chat app.

This package contains test modules for:
- test_models.py: ChatRoom, Membership, DirectRoomPair, Message
- test_services.py: ChatRoomService and MessageService
- test_authorization.py: MembershipGuard
- test_registry.py: SessionRegistry
- test_fanout.py: FanoutService routing and failure isolation
- test_consumers.py: WebSocket handshake and inbound messages
- test_views.py: REST API endpoints
- test_integration.py: End-to-end conversation flow

Usage:
    pytest app/chat/tests/
    pytest app/chat/tests/test_consumers.py
"""
