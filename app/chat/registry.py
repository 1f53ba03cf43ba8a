"""
In-process registry of live connections and their topic subscriptions.

The registry answers two questions for the fan-out engine:
- which live connections does user X have? (personal channel)
- which connections are subscribed to topic "room.{id}"?

Concurrency:
    All mutations are serialized by one threading.Lock. Every mutation
    builds new frozensets and swaps them into the index dicts, so lookups
    never take the lock and always see a consistent snapshot. Callers
    must not deliver while holding anything from this module; lookups
    return tuples that are safe to iterate after the registry changes.

Scope:
    One registry per process (get_session_registry()). Connections held by
    another worker process are not visible here.

Usage:
    registry = get_session_registry()
    registry.register(user.id, connection)
    registry.subscribe(connection, room_topic(room.id))

    for target in registry.subscribers(room_topic(room.id)):
        ...

    registry.unregister(connection)  # also drops its subscriptions
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.protocols import DeliveryTarget

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Maps users and topics to live connections.

    Connections are keyed by their connection_id; registering the same
    connection twice is a no-op.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # connection_id -> connection
        self._connections: dict[str, DeliveryTarget] = {}
        # user_id -> frozenset of connection_ids
        self._by_user: dict[int, frozenset[str]] = {}
        # topic -> frozenset of connection_ids
        self._by_topic: dict[str, frozenset[str]] = {}
        # connection_id -> frozenset of topics
        self._topics_by_connection: dict[str, frozenset[str]] = {}

    # =========================================================================
    # Connections
    # =========================================================================

    def register(self, user_id: int, connection: DeliveryTarget) -> None:
        """Bind a live connection to a user."""
        connection_id = connection.connection_id
        with self._lock:
            connections = dict(self._connections)
            connections[connection_id] = connection

            by_user = dict(self._by_user)
            by_user[user_id] = by_user.get(user_id, frozenset()) | {connection_id}

            self._connections = connections
            self._by_user = by_user

        logger.debug(f"Registered connection {connection_id} for user {user_id}")

    def unregister(self, connection: DeliveryTarget) -> None:
        """
        Remove a connection and every topic subscription it holds.

        Unknown connections are ignored, so concurrent or repeated calls
        are safe.
        """
        connection_id = connection.connection_id
        with self._lock:
            if connection_id not in self._connections:
                return

            connections = dict(self._connections)
            registered = connections.pop(connection_id)

            by_user = dict(self._by_user)
            remaining = by_user.get(registered.user_id, frozenset()) - {connection_id}
            if remaining:
                by_user[registered.user_id] = remaining
            else:
                by_user.pop(registered.user_id, None)

            topics_by_connection = dict(self._topics_by_connection)
            topics = topics_by_connection.pop(connection_id, frozenset())

            by_topic = dict(self._by_topic)
            for topic in topics:
                left = by_topic.get(topic, frozenset()) - {connection_id}
                if left:
                    by_topic[topic] = left
                else:
                    by_topic.pop(topic, None)

            self._connections = connections
            self._by_user = by_user
            self._topics_by_connection = topics_by_connection
            self._by_topic = by_topic

        logger.debug(
            f"Unregistered connection {connection_id} "
            f"(user {registered.user_id}, {len(topics)} topics)"
        )

    def connections_for(self, user_id: int) -> tuple[DeliveryTarget, ...]:
        """Snapshot of the user's live connections."""
        connections = self._connections
        ids = self._by_user.get(user_id, frozenset())
        return tuple(connections[cid] for cid in ids if cid in connections)

    def is_registered(self, connection: DeliveryTarget) -> bool:
        return connection.connection_id in self._connections

    # =========================================================================
    # Topics
    # =========================================================================

    def subscribe(self, connection: DeliveryTarget, topic: str) -> bool:
        """
        Subscribe a registered connection to a topic.

        Returns:
            False if the connection is not registered, True otherwise
            (subscribing twice is a no-op)
        """
        connection_id = connection.connection_id
        with self._lock:
            if connection_id not in self._connections:
                return False

            by_topic = dict(self._by_topic)
            by_topic[topic] = by_topic.get(topic, frozenset()) | {connection_id}

            topics_by_connection = dict(self._topics_by_connection)
            topics_by_connection[connection_id] = topics_by_connection.get(
                connection_id, frozenset()
            ) | {topic}

            self._by_topic = by_topic
            self._topics_by_connection = topics_by_connection
        return True

    def unsubscribe(self, connection: DeliveryTarget, topic: str) -> None:
        """Drop a topic subscription; unknown subscriptions are ignored."""
        connection_id = connection.connection_id
        with self._lock:
            if topic not in self._topics_by_connection.get(connection_id, frozenset()):
                return

            by_topic = dict(self._by_topic)
            left = by_topic.get(topic, frozenset()) - {connection_id}
            if left:
                by_topic[topic] = left
            else:
                by_topic.pop(topic, None)

            topics_by_connection = dict(self._topics_by_connection)
            remaining = topics_by_connection[connection_id] - {topic}
            if remaining:
                topics_by_connection[connection_id] = remaining
            else:
                topics_by_connection.pop(connection_id)

            self._by_topic = by_topic
            self._topics_by_connection = topics_by_connection

    def subscribers(self, topic: str) -> tuple[DeliveryTarget, ...]:
        """Snapshot of the connections subscribed to a topic."""
        connections = self._connections
        ids = self._by_topic.get(topic, frozenset())
        return tuple(connections[cid] for cid in ids if cid in connections)

    def topics_for(self, connection: DeliveryTarget) -> frozenset[str]:
        """Topics the connection is currently subscribed to."""
        return self._topics_by_connection.get(connection.connection_id, frozenset())

    def __len__(self) -> int:
        return len(self._connections)


_registry: SessionRegistry | None = None
_registry_lock = threading.Lock()


def get_session_registry() -> SessionRegistry:
    """Return the process-wide registry, creating it on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = SessionRegistry()
    return _registry


def reset_session_registry() -> SessionRegistry:
    """Replace the process-wide registry with an empty one (tests)."""
    global _registry
    with _registry_lock:
        _registry = SessionRegistry()
    return _registry
