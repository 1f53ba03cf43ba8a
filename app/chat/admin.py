"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Room management (with members inline)
- Message moderation
"""

from django.contrib import admin

from chat.models import ChatRoom, DirectRoomPair, Membership, Message


class MembershipInline(admin.TabularInline):
    """Inline display of members in room admin."""

    model = Membership
    extra = 0
    readonly_fields = ["joined_at"]
    raw_id_fields = ["user"]


@admin.register(ChatRoom)
class ChatRoomAdmin(admin.ModelAdmin):
    """Admin interface for ChatRoom model."""

    list_display = ["id", "created_at", "updated_at"]
    list_filter = ["created_at"]
    search_fields = ["id", "memberships__user__username"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [MembershipInline]
    ordering = ["-created_at"]


@admin.register(DirectRoomPair)
class DirectRoomPairAdmin(admin.ModelAdmin):
    """Admin interface for DirectRoomPair model."""

    list_display = ["room", "user_lower", "user_higher"]
    raw_id_fields = ["room", "user_lower", "user_higher"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["id", "room", "sender", "status", "content_preview", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["content", "sender__username"]
    readonly_fields = ["created_at", "updated_at"]
    raw_id_fields = ["room", "sender"]
    ordering = ["-created_at"]

    @admin.display(description="Content")
    def content_preview(self, obj):
        return obj.content[:50] + "..." if len(obj.content) > 50 else obj.content
