"""
Authentication endpoints and bearer-token request guard.

Registration and login hand out stateless JWT credentials. Protected
endpoints authenticate on every request: Flask-Login's request loader turns
the `Authorization: Bearer <token>` header into a `Claims` object that
becomes `current_user`. No server-side session is created.
"""

import logging
from functools import wraps

from flask import Blueprint, jsonify, request
from flask_login import current_user

from .logger import handle_api_errors, log_api_request, log_user_action
from .services import get_services
from .services.credentials import parse_bearer_header
from .utils.api_response_utils import (format_chat_relay_error, format_error_response,
                                       format_validation_error)
from .utils.error_handling import Unauthorized, ValidationError

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


def load_user_from_request(req):
    """Flask-Login request loader: verified Claims or None"""
    token = parse_bearer_header(req.headers.get('Authorization'))
    if not token:
        return None
    try:
        return get_services().credentials.verify(token)
    except Unauthorized as e:
        logger.debug(f"Bearer token rejected: {e.message}")
        return None


def bearer_token_required(f):
    """
    Require a valid bearer credential.

    A request without an Authorization header gets 401; a header whose token
    fails verification (bad signature, expired, malformed) gets 403.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not request.headers.get('Authorization'):
            return format_error_response('No authentication token provided', 'unauthorized', 401)
        if not current_user.is_authenticated:
            return format_error_response('Invalid token', 'unauthorized', 403)
        return f(*args, **kwargs)
    return decorated_function


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@auth_bp.route('/register', methods=['POST'])
@handle_api_errors
def register():
    log_api_request(request.endpoint, request.method, ip_address=request.remote_addr)
    data = _json_body()
    username = data.get('username')
    email = data.get('email')
    password = data.get('password')

    if not username or not email or not password:
        return format_error_response(
            'Please provide username, email and password', 'validation_error', 400
        )

    services = get_services()
    try:
        identity = services.identities.register(username, email, password)
    except ValidationError as e:
        return format_chat_relay_error(e)
    token = services.credentials.issue(identity)

    log_user_action(identity.id, "registered", f"username={identity.username}")
    return jsonify({'user': identity.to_public_dict(), 'token': token}), 201


@auth_bp.route('/login', methods=['POST'])
@handle_api_errors
def login():
    log_api_request(request.endpoint, request.method, ip_address=request.remote_addr)
    data = _json_body()
    email = data.get('email')
    password = data.get('password')

    if not email or not password:
        missing = 'email' if not email else 'password'
        return format_validation_error(missing, 'Please provide email and password')

    services = get_services()
    identity = services.identities.login(email, password)
    token = services.credentials.issue(identity)

    log_user_action(identity.id, "logged in")
    return jsonify({'user': identity.to_public_dict(), 'token': token})
