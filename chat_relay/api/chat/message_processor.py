"""
Chat message validation shared by the REST and WebSocket transports.
"""

from typing import Any

from ...config import Config
from ...utils.error_handling import ValidationError


def validate_message(message: Any, max_length: int = Config.MAX_MESSAGE_LENGTH) -> str:
    """
    Check an inbound chat message and return it unchanged.

    The text is forwarded to the reply service exactly as the user typed it;
    only emptiness and length are enforced here.

    Raises:
        ValidationError: message missing, not a string, blank, or too long.
    """
    if not isinstance(message, str) or not message.strip():
        raise ValidationError('Message is required')

    if len(message) > max_length:
        raise ValidationError(f'Message too long. Maximum {max_length:,} characters allowed.')

    return message


def extract_socket_message(payload: Any) -> Any:
    """`sendMessage` carries a bare string; accept {'message': ...} as well"""
    if isinstance(payload, dict):
        return payload.get('message')
    return payload
