"""
Standardized API response utilities for consistent error handling
"""

from flask import jsonify, Response
from typing import Any, Dict, Optional, Tuple

from .error_handling import ChatRelayError


def format_error_response(
    error_message: str,
    error_type: str = 'internal_error',
    status_code: int = 500,
    details: Optional[Dict[str, Any]] = None
) -> Tuple[Response, int]:
    """Format standardized error response"""
    response = {
        'error': error_message,
        'error_type': error_type
    }
    if details:
        response['details'] = details
    return jsonify(response), status_code


def format_validation_error(field: str, message: str) -> Tuple[Response, int]:
    """Format validation error response"""
    return format_error_response(
        error_message=message,
        error_type='validation_error',
        status_code=400,
        details={'field': field}
    )


def format_chat_relay_error(error: ChatRelayError,
                            status_code: Optional[int] = None) -> Tuple[Response, int]:
    """Serialize a domain error with its own (or an overridden) status"""
    return jsonify(error.to_dict()), status_code or error.status_code
