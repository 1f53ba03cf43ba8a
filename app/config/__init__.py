# =============================================================================
# Django Project Configuration Package
# =============================================================================
# This package contains all Django configuration including settings, URLs
# and the ASGI application (HTTP and WebSocket).
# =============================================================================
