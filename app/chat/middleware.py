"""
WebSocket authentication middleware.

Provides JWT authentication for WebSocket connections.

Related files:
    - routing.py: WebSocket URL patterns
    - consumers.py: WebSocket handlers
    - config/asgi.py: ASGI configuration

Token Passing Methods (in order of precedence):
    1. Query string: ws://host/ws/chat/?token=<jwt_token>
    2. Subprotocol: Sec-WebSocket-Protocol: jwt, <jwt_token>
    3. Header: Authorization: Bearer <jwt_token>

Scope keys set:
    user: The authenticated User, or AnonymousUser
    auth_error: AuthenticationError describing why authentication failed,
                None on success

Usage in config/asgi.py:
    from chat.middleware import JWTAuthMiddleware

    application = ProtocolTypeRouter({
        "websocket": JWTAuthMiddleware(
            URLRouter(websocket_urlpatterns)
        ),
    })
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser

from core.exceptions import AuthenticationError, StorageError

from authentication.services import TokenService
from chat.constants import REALTIME_CONFIG

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(BaseMiddleware):
    """
    JWT authentication middleware for WebSocket connections.

    Extracts the JWT from the handshake, validates it and attaches the
    user to the scope. The consumer decides whether to accept; this
    middleware never closes a connection itself.
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)

        token = (
            self._get_token_from_query(scope)
            or self._get_token_from_subprotocol(scope)
            or self._get_token_from_header(scope)
        )

        scope["user"], scope["auth_error"] = await self._authenticate(token)
        return await super().__call__(scope, receive, send)

    @staticmethod
    def _get_token_from_query(scope) -> str | None:
        query_string = scope.get("query_string", b"").decode()
        token_list = parse_qs(query_string).get("token", [])
        return token_list[0] if token_list else None

    @staticmethod
    def _get_token_from_subprotocol(scope) -> str | None:
        """Expects: Sec-WebSocket-Protocol: jwt, <token>"""
        subprotocols = scope.get("subprotocols") or []
        if len(subprotocols) >= 2 and subprotocols[0] == REALTIME_CONFIG.JWT_SUBPROTOCOL:
            return subprotocols[1]
        return None

    @staticmethod
    def _get_token_from_header(scope) -> str | None:
        for name, value in scope.get("headers") or []:
            if name.lower() == b"authorization":
                scheme, _, credentials = value.decode().partition(" ")
                if scheme.lower() == "bearer" and credentials:
                    return credentials.strip()
        return None

    async def _authenticate(self, token: str | None):
        """
        Resolve a token to (user, error).

        Returns:
            (User, None) on success, (AnonymousUser, AuthenticationError)
            otherwise
        """
        try:
            result = await database_sync_to_async(TokenService.get_user_for_token)(
                token or ""
            )
        except StorageError as e:
            logger.error(f"Could not authenticate WebSocket handshake: {e}")
            return AnonymousUser(), AuthenticationError(
                "Authentication is temporarily unavailable",
                error_code="AUTH_UNAVAILABLE",
            )

        if not result.success:
            error = result.exception or AuthenticationError(result.error)
            return AnonymousUser(), error
        return result.data, None
