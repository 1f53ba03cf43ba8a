"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User model and manager tests
- test_services.py: AuthService and TokenService tests
- test_views.py: Register, login, refresh and user lookup endpoints

Usage:
    pytest app/authentication/tests/
"""
