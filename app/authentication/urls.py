"""
URL configuration for authentication endpoints.

URL structure:
    /api/v1/auth/register/        - Create account, returns tokens
    /api/v1/auth/login/           - Username/password login, returns tokens
    /api/v1/auth/token/refresh/   - simplejwt refresh
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from authentication.views import LoginView, RegisterView

app_name = "authentication"

urlpatterns = [
    path("register/", RegisterView.as_view(), name="register"),
    path("login/", LoginView.as_view(), name="login"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
]
