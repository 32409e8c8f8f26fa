"""
Chat API Package - REST and WebSocket transports over one MessageRelay.

- rest_api: HTTP endpoints; per-request bearer authentication
- websocket_handlers: Socket.IO events; authentication once at connect
- message_processor: inbound message validation shared by both

Package Exports:
    - chat_bp: Flask blueprint with REST API endpoints
    - register_chat_socketio_handlers: WebSocket event handler registration
"""

from .rest_api import chat_bp
from .websocket_handlers import register_chat_socketio_handlers

__all__ = ['chat_bp', 'register_chat_socketio_handlers']
