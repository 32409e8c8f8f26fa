"""
RESTful Chat API Endpoints
==========================

Request/response half of the chat relay. Every endpoint authenticates the
bearer credential on its own; there is no connection-level state.

API Endpoints:
    - POST   /api/message            send a message, receive {"response": ...}
    - GET    /api/messages/history   page of history (?limit=50&skip=0), oldest first
    - GET    /api/messages/recent    last N user/bot turns (?pairs=10)
    - DELETE /api/messages/history   remove the caller's whole history

Unlike the WebSocket path, a reply-generation failure here is reported as a
500 with an error body rather than softened into an apology message.
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user

from ...auth import bearer_token_required
from ...logger import handle_api_errors, log_api_request, log_error, log_execution_time
from ...services import get_services
from ...utils.api_response_utils import format_error_response
from ...utils.error_handling import GenerationError, PersistenceError
from .message_processor import validate_message

REPLY_FAILED_MESSAGE = 'Unable to get AI reply, please try again later'

chat_bp = Blueprint('chat', __name__, url_prefix='/api')


@chat_bp.route('/message', methods=['POST'])
@bearer_token_required
@handle_api_errors
@log_execution_time
def send_message():
    """Run one exchange for the authenticated caller"""
    log_api_request(request.endpoint, request.method, user_id=current_user.id)

    data = request.get_json(silent=True) or {}
    message = validate_message(data.get('message') if isinstance(data, dict) else None)

    try:
        reply = get_services().relay.exchange(current_user.owner, message)
    except (GenerationError, PersistenceError) as e:
        log_error(f"Message exchange failed for {current_user.id}: {e}")
        return format_error_response(REPLY_FAILED_MESSAGE, e.code, 500)

    return jsonify({'response': reply})


@chat_bp.route('/messages/history', methods=['GET'])
@bearer_token_required
@handle_api_errors
def message_history():
    log_api_request(request.endpoint, request.method, user_id=current_user.id)

    limit = request.args.get('limit')
    skip = request.args.get('skip')
    try:
        messages = get_services().conversations.history(current_user.owner, limit, skip)
    except PersistenceError as e:
        log_error(f"Failed to load history for {current_user.id}: {e}")
        return format_error_response('Failed to load message history', e.code, 500)

    return jsonify([m.to_dict() for m in messages])


@chat_bp.route('/messages/recent', methods=['GET'])
@bearer_token_required
@handle_api_errors
def recent_conversation():
    log_api_request(request.endpoint, request.method, user_id=current_user.id)

    pairs = request.args.get('pairs')
    messages = get_services().conversations.recent(current_user.owner, pairs)
    return jsonify([m.to_dict() for m in messages])


@chat_bp.route('/messages/history', methods=['DELETE'])
@bearer_token_required
@handle_api_errors
def delete_history():
    log_api_request(request.endpoint, request.method, user_id=current_user.id)

    removed = get_services().conversations.delete_all(current_user.owner)
    return jsonify({'deleted': removed})
