"""
API package: health endpoints plus the chat transports.
"""

from flask import Blueprint, jsonify

from ..config import Config
from ..services import get_services

api_bp = Blueprint('api', __name__)


@api_bp.route('/', methods=['GET'])
def index():
    return f"{Config.APP_NAME} API is running"


@api_bp.route('/api/health', methods=['GET'])
def health():
    services = get_services()
    return jsonify({
        'status': 'ok',
        'version': Config.VERSION,
        'storage_mode': services.storage.current_mode().value,
    })
