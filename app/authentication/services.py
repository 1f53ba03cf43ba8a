"""
Authentication services.

This module provides:
- AuthService: registration, credential login and user lookup/search
- TokenService: JWT issuance and bearer-token verification (simplejwt)

Related files:
    - models.py: User
    - views.py: REST endpoints that call these services
    - chat/middleware.py: WebSocket handshake that calls TokenService

Security:
    - Passwords hashed with Django's configured hasher
    - Access tokens are short-lived signed JWTs; the subject claim is the user id
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.models import update_last_login
from django.db import IntegrityError
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from core.decorators import translate_storage_errors
from core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)

SEARCH_MIN_QUERY_LENGTH = 2
SEARCH_MAX_RESULTS = 50


class AuthService(BaseService):
    """
    Centralized account business logic.

    Usage:
        from authentication.services import AuthService

        result = AuthService.register("alice", "alice@example.com", "secret1")
        if result.success:
            user = result.data

        result = AuthService.login("alice", "secret1")
        result = AuthService.search_users("al", requesting_user=user)
    """

    @classmethod
    @translate_storage_errors
    def register(
        cls,
        username: str,
        email: str,
        password: str,
        display_name: str | None = None,
    ) -> ServiceResult[User]:
        """
        Create a new account.

        Returns:
            ServiceResult with the created user, or a CONFLICT failure with
            USERNAME_EXISTS / EMAIL_EXISTS.
        """
        User = get_user_model()
        username = username.strip()
        email = email.strip()

        if User.objects.filter(username=username).exists():
            return ServiceResult.from_error(
                ConflictError(
                    "Username already exists",
                    error_code="USERNAME_EXISTS",
                    details={"username": ["Username already exists"]},
                )
            )
        if User.objects.filter(email__iexact=email).exists():
            return ServiceResult.from_error(
                ConflictError(
                    "Email already exists",
                    error_code="EMAIL_EXISTS",
                    details={"email": ["Email already exists"]},
                )
            )

        try:
            with cls.atomic():
                user = User.objects.create_user(
                    username=username,
                    email=email,
                    password=password,
                    display_name=(display_name or "").strip() or username,
                )
        except IntegrityError:
            # Lost a race against a concurrent registration with the same name
            return ServiceResult.from_error(
                ConflictError(
                    "Username or email already exists",
                    error_code="USER_EXISTS",
                )
            )

        cls.get_logger().info(f"User registered: {user.username} (id={user.id})")
        return ServiceResult.success(user)

    @classmethod
    @translate_storage_errors
    def login(cls, username: str, password: str) -> ServiceResult[User]:
        """
        Verify username/password credentials.

        Inactive accounts are rejected the same way as wrong passwords.
        """
        user = authenticate(username=username, password=password)
        if user is None:
            cls.get_logger().info(f"Failed login attempt for username: {username}")
            return ServiceResult.from_error(
                AuthenticationError(
                    "Invalid username or password",
                    error_code="INVALID_CREDENTIALS",
                )
            )

        update_last_login(None, user)
        return ServiceResult.success(user)

    @classmethod
    @translate_storage_errors
    def get_user(cls, user_id: int) -> ServiceResult[User]:
        """Look up an active user by id."""
        User = get_user_model()
        try:
            user = User.objects.get(id=user_id, is_active=True)
        except User.DoesNotExist:
            return ServiceResult.from_error(
                NotFoundError(
                    f"User {user_id} not found",
                    error_code="USER_NOT_FOUND",
                    details={"user_id": user_id},
                )
            )
        return ServiceResult.success(user)

    @classmethod
    @translate_storage_errors
    def search_users(cls, query: str, requesting_user: User) -> ServiceResult[list]:
        """
        Case-insensitive substring search on username.

        The requester is never part of the result. Queries shorter than
        SEARCH_MIN_QUERY_LENGTH (after trimming) are rejected.
        """
        query = (query or "").strip()
        if len(query) < SEARCH_MIN_QUERY_LENGTH:
            return ServiceResult.from_error(
                ValidationError(
                    f"Search query must be at least {SEARCH_MIN_QUERY_LENGTH} characters",
                    error_code="QUERY_TOO_SHORT",
                    details={"q": [f"Ensure this field has at least {SEARCH_MIN_QUERY_LENGTH} characters."]},
                )
            )

        User = get_user_model()
        users = list(
            User.objects.filter(username__icontains=query, is_active=True)
            .exclude(id=requesting_user.id)
            .order_by("username")[:SEARCH_MAX_RESULTS]
        )
        return ServiceResult.success(users)


class TokenService(BaseService):
    """
    Identity verifier backed by simplejwt.

    Usage:
        tokens = TokenService.issue_tokens(user)
        # {"access": "...", "refresh": "..."}

        result = TokenService.get_user_for_token(tokens["access"])
        if result.success:
            user = result.data
    """

    @classmethod
    def issue_tokens(cls, user: User) -> dict[str, str]:
        """Issue an access/refresh token pair for the user."""
        refresh = RefreshToken.for_user(user)
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }

    @classmethod
    def verify_access_token(cls, raw_token: str) -> ServiceResult[int]:
        """
        Validate a bearer access token and return the user id it names.

        Fails with AUTHENTICATION kind for malformed, expired or
        wrongly-signed tokens and for refresh tokens passed as access tokens.
        """
        if not raw_token:
            return ServiceResult.from_error(
                AuthenticationError("Missing token", error_code="TOKEN_MISSING")
            )
        try:
            token = AccessToken(raw_token)
            user_id = token[jwt_settings.USER_ID_CLAIM]
        except (TokenError, KeyError) as e:
            cls.get_logger().warning(f"Rejected access token: {e}")
            return ServiceResult.from_error(
                AuthenticationError("Invalid or expired token", error_code="INVALID_TOKEN")
            )
        return ServiceResult.success(int(user_id))

    @classmethod
    @translate_storage_errors
    def get_user_for_token(cls, raw_token: str) -> ServiceResult[User]:
        """Validate a token and load its active user."""
        verified = cls.verify_access_token(raw_token)
        if not verified.success:
            return verified

        User = get_user_model()
        try:
            user = User.objects.get(id=verified.data)
        except User.DoesNotExist:
            cls.get_logger().warning(f"Token for unknown user id {verified.data}")
            return ServiceResult.from_error(
                AuthenticationError("User not found", error_code="USER_NOT_FOUND")
            )

        if not user.is_active:
            cls.get_logger().warning(f"Token for inactive user id {user.id}")
            return ServiceResult.from_error(
                AuthenticationError("User is inactive", error_code="USER_INACTIVE")
            )
        return ServiceResult.success(user)
