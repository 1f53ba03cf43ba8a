"""
Protocol definitions for infrastructure seams.

Protocols define contracts that implementations must fulfill, enabling:
- Duck typing with static type checking
- Easy fakes in tests

Available Protocols:
    DeliveryTarget: A live connection that real-time events can be pushed to

Usage:
    from core.protocols import DeliveryTarget

    class RecordingTarget:
        def __init__(self, connection_id, user_id):
            self.connection_id = connection_id
            self.user_id = user_id
            self.events = []

        async def deliver(self, event):
            self.events.append(event)

    # RecordingTarget is a valid DeliveryTarget without inheriting from it
    target: DeliveryTarget = RecordingTarget("c1", 7)

Note:
    @runtime_checkable allows isinstance() checks (attribute presence only).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any


@runtime_checkable
class DeliveryTarget(Protocol):
    """
    Protocol for a live, authenticated connection.

    Attributes:
        connection_id: Unique, hashable id of the connection
        user_id: Id of the authenticated user owning the connection

    deliver() pushes one event dict to the client. It may be slow or raise
    when the peer is gone; callers bound it with a timeout and treat a
    failure as a dropped delivery.
    """

    connection_id: str
    user_id: int

    async def deliver(self, event: dict[str, Any]) -> None:
        """Push one event to the connection."""
        ...
