"""
URL configuration for chat API.

URL Structure:
    Rooms:
        /rooms/                      GET
        /rooms/direct/               POST
        /rooms/{id}/                 GET

    Messages:
        /rooms/{id}/messages/        GET, POST
        /rooms/{id}/read/            PUT
        /messages/{id}/read/         PUT

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import path

from chat.views import (
    DirectRoomView,
    MessageReadView,
    RoomDetailView,
    RoomListView,
    RoomMessagesView,
    RoomReadView,
)

app_name = "chat"

urlpatterns = [
    path("rooms/", RoomListView.as_view(), name="room-list"),
    path("rooms/direct/", DirectRoomView.as_view(), name="room-direct"),
    path("rooms/<int:room_id>/", RoomDetailView.as_view(), name="room-detail"),
    path(
        "rooms/<int:room_id>/messages/",
        RoomMessagesView.as_view(),
        name="room-messages",
    ),
    path("rooms/<int:room_id>/read/", RoomReadView.as_view(), name="room-read"),
    path(
        "messages/<int:message_id>/read/",
        MessageReadView.as_view(),
        name="message-read",
    ),
]
