"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/ping/                  - Liveness probe
    /api/v1/auth/                  - Authentication endpoints
        register/                  - Create account, returns tokens
        login/                     - Username/password login, returns tokens
        token/refresh/             - Exchange refresh token for access token
    /api/v1/users/                 - User lookup
        me/                        - Current user
        {id}/                      - User by id
        search/?q=                 - Case-insensitive username search
    /api/v1/chat/                  - Chat endpoints
        rooms/                     - Rooms of the current user
        rooms/direct/              - Get or create the direct room with a user
        rooms/{id}/                - Room detail
        rooms/{id}/messages/       - Message history (GET) / send (POST)
        rooms/{id}/read/           - Mark every received message as read
        messages/{id}/read/        - Mark one message as read

WebSocket (see chat.routing):
    /ws/chat/                      - Real-time events

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check, ping

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("ping/", ping, name="ping"),
    # Authentication and user lookup
    path("auth/", include("authentication.urls")),
    path("users/", include("authentication.user_urls")),
    # Chat
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Messaging Admin"
admin.site.site_title = "Messaging Admin Portal"
admin.site.index_title = "Rooms, messages and users"
