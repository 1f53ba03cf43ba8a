"""
Authentication application.

This app provides user accounts, username/password login and the JWT
identity verifier used by both the REST API and the WebSocket handshake.

Key components:
    - User model: Username-based account with a display name
    - AuthService: Registration, login, lookup and search
    - TokenService: JWT issuance and verification

Usage:
    from authentication.models import User
    from authentication.services import AuthService, TokenService
"""
