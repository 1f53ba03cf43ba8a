"""
Authentication models.

This module defines the User model: a slim, username-based account that
owns chat memberships and messages.

Related files:
    - managers.py: Custom user manager
    - services.py: AuthService and TokenService business logic

Security:
    - User passwords hashed with Django's configured hasher
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.validators import MinLengthValidator
from django.db import models

from authentication.managers import UserManager

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using username as the login identifier.

    Fields:
        username: Login identifier, unique, case-sensitive storage
        email: Unique contact address
        display_name: Name shown to other participants (defaults to username)
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Note:
        Username and email are immutable after registration; only the
        display name may change.
    """

    username = models.CharField(
        unique=True,
        max_length=USERNAME_MAX_LENGTH,
        validators=[MinLengthValidator(USERNAME_MIN_LENGTH)],
        help_text="Unique login name (3-50 characters)",
    )
    email = models.EmailField(
        unique=True,
        max_length=254,
        help_text="User's email address",
    )
    display_name = models.CharField(
        max_length=100,
        blank=True,
        help_text="Name shown to other participants",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "username"
    EMAIL_FIELD = "email"
    REQUIRED_FIELDS = ["email"]

    objects = UserManager()

    class Meta:
        db_table = "users"
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.username

    def get_full_name(self):
        return self.display_name or self.username

    def get_short_name(self):
        return self.username
