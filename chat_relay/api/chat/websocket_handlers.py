"""
WebSocket Event Handlers for Real-time Chat
===========================================

Live-connection half of the chat relay, on Flask-SocketIO.

The bearer credential is checked once, in the connect handshake
(`io(url, {auth: {token}})`). A missing or invalid token refuses the
connection outright and nothing is recorded for it. After that, every
message on the socket runs as the identity verified at connect time.

WebSocket Events:

    Client to Server:
        - 'sendMessage': text of the user's message

    Server to Client:
        - 'receiveMessage': the reply text, or a fixed apology when the
          reply could not be generated or the message could not be stored
        - 'error': the message itself was rejected (empty or too long)

An exchange is never cancelled: if the client disconnects mid-exchange the
reply is still stored, just not delivered.
"""

import threading
import time
from typing import Any, Dict, Optional

from flask import request
from flask_socketio import ConnectionRefusedError, emit

from ...logger import log_error, log_info, log_warning
from ...models import Claims
from ...services import get_services
from ...services.message_relay import APOLOGY_MESSAGE
from ...utils.error_handling import PersistenceError, Unauthorized, ValidationError
from .message_processor import extract_socket_message, validate_message


class WebSocketConnectionManager:
    """
    Registry of authenticated live connections, keyed by Socket.IO sid.

    Only connections that passed the handshake are ever added.
    """

    def __init__(self):
        self.active_connections: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def add_connection(self, sid: str, claims: Claims, ip: str):
        with self._lock:
            self.active_connections[sid] = {
                'claims': claims,
                'ip': ip,
                'connected_at': time.time(),
                'message_count': 0,
            }

    def remove_connection(self, sid: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self.active_connections.pop(sid, None)

    def get_claims(self, sid: str) -> Optional[Claims]:
        with self._lock:
            info = self.active_connections.get(sid)
            if info is None:
                return None
            info['message_count'] += 1
            return info['claims']

    def count(self) -> int:
        with self._lock:
            return len(self.active_connections)


# Global connection manager
connection_manager = WebSocketConnectionManager()


def _handshake_token(auth) -> Optional[str]:
    if isinstance(auth, dict):
        return auth.get('token')
    return None


def register_chat_socketio_handlers(socketio):
    """Register WebSocket event handlers for chat"""

    @socketio.on('connect')
    def handle_connect(auth=None):
        """Authenticate the handshake or refuse the connection"""
        client_ip = request.remote_addr or 'unknown'
        try:
            claims = get_services().credentials.verify(_handshake_token(auth))
        except Unauthorized as e:
            log_warning(f"WebSocket connection refused from {client_ip}: {e.message}")
            raise ConnectionRefusedError(e.message)

        connection_manager.add_connection(request.sid, claims, client_ip)
        log_info(f"WebSocket connected: {request.sid} from {client_ip} (user: {claims.username})")

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        info = connection_manager.remove_connection(request.sid)
        if info:
            log_info(f"WebSocket disconnected: {request.sid} (user: {info['claims'].username})")

    @socketio.on('sendMessage')
    def handle_send_message(payload):
        """Run one exchange and deliver the reply on 'receiveMessage'"""
        claims = connection_manager.get_claims(request.sid)
        if claims is None:
            emit('error', {'message': 'Connection not authenticated'})
            return

        try:
            message = validate_message(extract_socket_message(payload))
        except ValidationError as e:
            emit('error', {'message': e.message})
            return

        try:
            reply = get_services().relay.exchange_or_apologize(claims.owner, message)
        except PersistenceError as e:
            log_error(f"WebSocket message from {claims.id} could not be stored: {e}")
            reply = APOLOGY_MESSAGE

        emit('receiveMessage', reply)
