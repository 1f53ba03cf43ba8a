"""
Serializers for authentication endpoints.

This module provides DRF serializers for:
- User (read operations, also embedded in chat payloads)
- Registration and login requests
- Token responses

Related files:
    - models.py: User model
    - views.py: Views that use these serializers

Security:
    - Password fields are write-only
"""

from rest_framework import serializers

from authentication.models import USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH, User


class UserSerializer(serializers.ModelSerializer):
    """Public representation of a user."""

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "display_name",
            "date_joined",
        ]
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation embedded in rooms and messages."""

    class Meta:
        model = User
        fields = ["id", "username", "display_name"]
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    """
    Validate a registration request.

    Uniqueness is checked by AuthService.register so that duplicate
    usernames surface as 409 CONFLICT rather than 400.
    """

    username = serializers.CharField(
        min_length=USERNAME_MIN_LENGTH,
        max_length=USERNAME_MAX_LENGTH,
        trim_whitespace=True,
    )
    email = serializers.EmailField(max_length=254)
    password = serializers.CharField(min_length=6, max_length=128, write_only=True)
    display_name = serializers.CharField(
        max_length=100, required=False, allow_blank=True, default=""
    )


class LoginSerializer(serializers.Serializer):
    """Validate a login request."""

    username = serializers.CharField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class AuthResponseSerializer(serializers.Serializer):
    """Response body of register and login."""

    token = serializers.CharField(help_text="JWT access token")
    refresh = serializers.CharField(help_text="JWT refresh token")
    type = serializers.CharField(default="Bearer")
    user = UserSerializer()

