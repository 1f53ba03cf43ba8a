"""
Chat application configuration.

This app provides direct messaging with:
- Two-member chat rooms, one per user pair
- Paginated message history with SENT/DELIVERED/READ status
- Real-time fan-out over WebSockets
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
