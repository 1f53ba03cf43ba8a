"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures (two room members and an outsider)
- A direct room between the members
- API client helpers for authenticated requests
- RecordingConnection, an in-memory delivery target for fan-out tests

Usage:
    def test_example(room, alice_client):
        response = alice_client.get(f'/api/v1/chat/rooms/{room.id}/')
        assert response.status_code == 200
"""

import asyncio

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.tests.factories import DirectRoomFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    """Room member."""
    return UserFactory(username="alice", display_name="Alice")


@pytest.fixture
def bob(db):
    """The other room member."""
    return UserFactory(username="bob", display_name="Bob")


@pytest.fixture
def carol(db):
    """A user who is not a member of any test room."""
    return UserFactory(username="carol", display_name="Carol")


# =============================================================================
# Room Fixtures
# =============================================================================


@pytest.fixture
def room(alice, bob):
    """Direct room between alice and bob."""
    return DirectRoomFactory(members=[alice, bob])


# =============================================================================
# API Client Fixtures
# =============================================================================


def make_client(user=None):
    """API client authenticated as user (anonymous when user is None)."""
    client = APIClient()
    if user is not None:
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def api_client():
    return make_client()


@pytest.fixture
def alice_client(alice):
    return make_client(alice)


@pytest.fixture
def bob_client(bob):
    return make_client(bob)


@pytest.fixture
def carol_client(carol):
    return make_client(carol)


# =============================================================================
# Delivery Targets
# =============================================================================


class RecordingConnection:
    """
    Delivery target that records every event it receives.

    Args:
        user_id: Owner of the connection
        connection_id: Unique id (defaults to "conn-<user_id>-<n>")
        delay: Seconds to sleep before accepting an event
        error: Exception raised instead of accepting an event
    """

    _counter = 0

    def __init__(self, user_id, connection_id=None, delay=0.0, error=None):
        RecordingConnection._counter += 1
        self.user_id = user_id
        self.connection_id = connection_id or f"conn-{user_id}-{RecordingConnection._counter}"
        self.delay = delay
        self.error = error
        self.events = []

    async def deliver(self, event):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.events.append(event)

    def types(self):
        return [event["type"] for event in self.events]


@pytest.fixture
def make_connection():
    """Factory fixture building RecordingConnection instances."""
    return RecordingConnection
