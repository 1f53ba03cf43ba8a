"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - One multiplexed connection per client; rooms are joined
               with subscribe messages

Authentication:
    JWT access token as ?token=<jwt>, as the "jwt, <token>" subprotocol
    pair, or as an Authorization: Bearer header. JWTAuthMiddleware
    resolves it and attaches the user to the consumer's scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
