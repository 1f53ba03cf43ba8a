"""
Views for chat API.

This module provides REST API endpoints for direct messaging:
- Room directory (list, get-or-create direct room, detail)
- Message history and sending
- Read status updates

URL Structure:
    /api/v1/chat/rooms/                          GET
    /api/v1/chat/rooms/direct/                   POST
    /api/v1/chat/rooms/{id}/                     GET
    /api/v1/chat/rooms/{id}/messages/            GET, POST
    /api/v1/chat/rooms/{id}/read/                PUT
    /api/v1/chat/messages/{id}/read/             PUT

Design Decisions:
    - Plain APIViews; all business rules live in chat.services
    - Service failures are raised with result.raise_for_error() and rendered
      by core.exceptions.api_exception_handler
    - Real-time fan-out runs in transaction.on_commit so live clients never
      see a message or read receipt that was rolled back
"""

from __future__ import annotations

from django.db import transaction
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.helpers import parse_int_param

from chat.constants import default_page_size
from chat.fanout import FanoutService
from chat.serializers import (
    ChatRoomSerializer,
    DirectRoomRequestSerializer,
    MarkAllReadResponseSerializer,
    MessageCreateSerializer,
    MessagePageSerializer,
    MessageSerializer,
)
from chat.services import ChatRoomService, MessageService


# =============================================================================
# Rooms
# =============================================================================


class RoomListView(APIView):
    """
    GET: List the rooms the authenticated user belongs to, newest room first.

    URL: /api/v1/chat/rooms/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List my rooms",
        tags=["Chat - Rooms"],
        responses={200: ChatRoomSerializer(many=True)},
    )
    def get(self, request):
        result = ChatRoomService.list_rooms_for_user(request.user)
        result.raise_for_error()

        serializer = ChatRoomSerializer(
            result.data, many=True, context={"request": request, "user": request.user}
        )
        return Response(serializer.data)


class DirectRoomView(APIView):
    """
    POST: Get or create the direct room with another user.

    URL: /api/v1/chat/rooms/direct/

    Request body:
        {"target_user_id": 42}

    Returns:
        201 with the room when it was created, 200 when it already existed.
        400 SAME_USER for the caller's own id, 404 USER_NOT_FOUND otherwise.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get or create direct room",
        tags=["Chat - Rooms"],
        request=DirectRoomRequestSerializer,
        responses={
            200: ChatRoomSerializer,
            201: ChatRoomSerializer,
            400: OpenApiResponse(description="Invalid target (e.g. yourself)"),
            404: OpenApiResponse(description="Target user not found"),
        },
    )
    def post(self, request):
        serializer = DirectRoomRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ChatRoomService.get_or_create_direct_room(
            request.user, serializer.validated_data["target_user_id"]
        )
        result.raise_for_error()

        room, created = result.data
        # Re-read with memberships prefetched for the response
        room = ChatRoomService.get_room(room.id, request.user).data or room
        data = ChatRoomSerializer(
            room, context={"request": request, "user": request.user}
        ).data
        return Response(
            data, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


class RoomDetailView(APIView):
    """
    GET: Room detail for a member.

    URL: /api/v1/chat/rooms/{room_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get room",
        tags=["Chat - Rooms"],
        responses={
            200: ChatRoomSerializer,
            403: OpenApiResponse(description="Not a member of this room"),
            404: OpenApiResponse(description="Room not found"),
        },
    )
    def get(self, request, room_id):
        result = ChatRoomService.get_room(room_id, request.user)
        result.raise_for_error()

        return Response(
            ChatRoomSerializer(
                result.data, context={"request": request, "user": request.user}
            ).data
        )


# =============================================================================
# Messages
# =============================================================================


class RoomMessagesView(APIView):
    """
    API view for a room's message history.

    GET: One page of history, newest first
    POST: Send a message; live recipients are notified after commit

    URL: /api/v1/chat/rooms/{room_id}/messages/

    Query parameters (GET):
        page: Zero-indexed page number (default 0)
        size: Page size (default 20, capped at 100)
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get messages",
        tags=["Chat - Messages"],
        parameters=[
            OpenApiParameter(name="page", type=int, required=False, description="Zero-indexed page"),
            OpenApiParameter(name="size", type=int, required=False, description="Page size (max 100)"),
        ],
        responses={200: MessagePageSerializer},
    )
    def get(self, request, room_id):
        page = parse_int_param(request.query_params, "page", 0)
        size = parse_int_param(request.query_params, "size", default_page_size())

        result = MessageService.get_messages(room_id, request.user, page=page, size=size)
        result.raise_for_error()

        return Response(MessagePageSerializer(result.data).data)

    @extend_schema(
        summary="Send message",
        tags=["Chat - Messages"],
        request=MessageCreateSerializer,
        responses={201: MessageSerializer},
    )
    def post(self, request, room_id):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MessageService.send_message(
            room_id, request.user, serializer.validated_data["content"]
        )
        result.raise_for_error()

        message = result.data
        data = MessageSerializer(message).data
        sender_id = request.user.id
        transaction.on_commit(
            lambda: FanoutService.publish_message_sync(room_id, sender_id, dict(data))
        )
        return Response(data, status=status.HTTP_201_CREATED)


class RoomReadView(APIView):
    """
    PUT: Mark every received message in the room as read.

    URL: /api/v1/chat/rooms/{room_id}/read/

    Returns:
        {"updated": <number of messages changed>}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Mark room read",
        tags=["Chat - Messages"],
        request=None,
        responses={200: MarkAllReadResponseSerializer},
    )
    def put(self, request, room_id):
        result = MessageService.mark_all_read(room_id, request.user)
        result.raise_for_error()

        updated = result.data
        reader_id = request.user.id
        transaction.on_commit(
            lambda: FanoutService.publish_read_receipt_sync(
                room_id, reader_id, None, updated
            )
        )
        return Response({"updated": updated})


class MessageReadView(APIView):
    """
    PUT: Mark one received message as read.

    URL: /api/v1/chat/messages/{message_id}/read/

    Marking your own message returns 400 OWN_MESSAGE; marking an already
    read message succeeds without change.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Mark message read",
        tags=["Chat - Messages"],
        request=None,
        responses={200: MessageSerializer},
    )
    def put(self, request, message_id):
        result = MessageService.mark_read(message_id, request.user)
        result.raise_for_error()

        message = result.data
        reader_id = request.user.id
        transaction.on_commit(
            lambda: FanoutService.publish_read_receipt_sync(
                message.room_id, reader_id, message.id
            )
        )
        return Response(MessageSerializer(message).data)
