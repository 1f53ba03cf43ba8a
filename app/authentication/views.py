"""
Authentication views.

This module provides API views for:
- Registration and login (returning JWT access/refresh tokens)
- Current user and user lookup
- Username search (used to start a direct chat)

Related files:
    - serializers.py: Request/response serialization
    - services.py: Business logic (AuthService, TokenService)
    - urls.py, user_urls.py: URL routing

Note:
    Token refresh is simplejwt's TokenRefreshView (see urls.py).
    Failures are raised as core.exceptions errors and rendered by
    core.exceptions.api_exception_handler.
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import (
    AuthResponseSerializer,
    LoginSerializer,
    RegisterSerializer,
    UserSerializer,
)
from authentication.services import AuthService, TokenService


def _auth_response(user) -> dict:
    tokens = TokenService.issue_tokens(user)
    return {
        "token": tokens["access"],
        "refresh": tokens["refresh"],
        "type": "Bearer",
        "user": UserSerializer(user).data,
    }


# =============================================================================
# Registration & Login
# =============================================================================


class RegisterView(APIView):
    """
    API view for account registration.

    POST: Create an account and return a token pair

    URL: /api/v1/auth/register/

    Request body:
        {
            "username": "alice",
            "email": "alice@example.com",
            "password": "secret1",
            "display_name": "Alice"       # optional, defaults to username
        }

    Returns (201):
        {
            "token": "jwt_access_token",
            "refresh": "jwt_refresh_token",
            "type": "Bearer",
            "user": { ... }
        }
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Register",
        tags=["Auth"],
        request=RegisterSerializer,
        responses={201: AuthResponseSerializer},
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AuthService.register(**serializer.validated_data)
        result.raise_for_error()

        return Response(_auth_response(result.data), status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    API view for username/password login.

    POST: Verify credentials and return a token pair

    URL: /api/v1/auth/login/

    Bad credentials return 401 with error_code INVALID_CREDENTIALS.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Log in",
        tags=["Auth"],
        request=LoginSerializer,
        responses={200: AuthResponseSerializer},
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AuthService.login(
            serializer.validated_data["username"],
            serializer.validated_data["password"],
        )
        result.raise_for_error()

        return Response(_auth_response(result.data))


# =============================================================================
# User Lookup Views
# =============================================================================


class CurrentUserView(APIView):
    """GET /api/v1/users/me/ - the authenticated user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Current user", tags=["Users"], responses={200: UserSerializer})
    def get(self, request):
        return Response(UserSerializer(request.user).data)


class UserDetailView(APIView):
    """GET /api/v1/users/{id}/ - any active user by id."""

    permission_classes = [IsAuthenticated]

    @extend_schema(summary="User by id", tags=["Users"], responses={200: UserSerializer})
    def get(self, request, user_id):
        result = AuthService.get_user(user_id)
        result.raise_for_error()
        return Response(UserSerializer(result.data).data)


class UserSearchView(APIView):
    """
    API view for username search.

    GET: Case-insensitive username substring search, excluding the caller

    URL: /api/v1/users/search/?q=<fragment>

    Queries shorter than 2 characters return 400 QUERY_TOO_SHORT.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Search users",
        tags=["Users"],
        parameters=[
            OpenApiParameter(
                name="q",
                type=str,
                required=True,
                description="Username fragment, at least 2 characters",
            )
        ],
        responses={200: UserSerializer(many=True)},
    )
    def get(self, request):
        result = AuthService.search_users(
            request.query_params.get("q", ""), requesting_user=request.user
        )
        result.raise_for_error()
        return Response(UserSerializer(result.data, many=True).data)
