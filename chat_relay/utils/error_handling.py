"""
Error taxonomy for the chat relay.

Every domain failure is a ChatRelayError carrying a stable error code (used
as `error_type` in JSON bodies) and the HTTP status the request/response
transport maps it to. Nothing in this hierarchy implies a retry: retry
policy belongs to the caller.
"""

from typing import Any, Dict, Optional


class ErrorCode:
    """Standardized error codes for the application"""

    VALIDATION_ERROR = 'validation_error'
    CONFLICT = 'conflict'
    UNAUTHORIZED = 'unauthorized'
    PERSISTENCE_ERROR = 'persistence_error'
    DUPLICATE_ENTRY = 'duplicate_entry'
    GENERATION_ERROR = 'generation_error'
    INTERNAL_ERROR = 'internal_error'


class ChatRelayError(Exception):
    """Base application error"""

    code = ErrorCode.INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses"""
        body = {
            'error': self.message,
            'error_type': self.code,
        }
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(ChatRelayError):
    """A required field is missing or malformed."""
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class Conflict(ChatRelayError):
    """Username or email already registered."""
    code = ErrorCode.CONFLICT
    status_code = 400


class Unauthorized(ChatRelayError):
    """Missing, invalid or expired credential, or bad login."""
    code = ErrorCode.UNAUTHORIZED
    status_code = 401


class PersistenceError(ChatRelayError):
    """A storage read or write failed."""
    code = ErrorCode.PERSISTENCE_ERROR
    status_code = 500


class DuplicateRecordError(PersistenceError):
    """A write violated a uniqueness constraint of the backend."""
    code = ErrorCode.DUPLICATE_ENTRY

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field


class GenerationError(ChatRelayError):
    """The reply generator failed (transport, status or malformed body)."""
    code = ErrorCode.GENERATION_ERROR
    status_code = 500
