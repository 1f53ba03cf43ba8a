"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by the domain apps
(authentication, chat). It holds no messaging logic of its own.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - ErrorKind: Error categories shared by REST and WebSocket
    - BaseApplicationError: Base exception with error codes
    - ValidationError, NotFoundError, PermissionDeniedError,
      AuthenticationError, ConflictError, StorageError, InternalError
    - api_exception_handler: DRF EXCEPTION_HANDLER

Protocols (import from core.protocols):
    - DeliveryTarget: Live connection that events can be pushed to

Decorators (import from core.decorators):
    - translate_storage_errors: DatabaseError -> StorageError

Helpers (import from core.helpers):
    - calculate_pagination: Zero-indexed pagination metadata
    - parse_int_param: Integer query parameter parsing

Views (import from core.views):
    - health_check, ping: Infrastructure probes

Usage:
    from core.models import BaseModel
    from core.services import BaseService, ServiceResult
    from core.exceptions import ValidationError, NotFoundError
"""
