"""
Chat Relay - Flask Application Factory.

Startup is sequenced explicitly; no component initializes its own
dependencies:

1. Flask app and configuration
2. Flask-SQLAlchemy binding
3. Storage mode resolution (one database probe, cached for the process)
4. Stores, credential issuer, reply generator, relay
5. Authentication (Flask-Login request loader), HTTP blueprints
6. Socket.IO event handlers

Example:
    >>> from chat_relay import create_app, socketio
    >>> app = create_app()
    >>> socketio.run(app, host='127.0.0.1', port=3000)
"""

from datetime import timedelta

from flask import Flask
from flask_cors import CORS
from flask_login import LoginManager
from flask_socketio import SocketIO
from sqlalchemy.exc import SQLAlchemyError

from .config import Config
from .logger import logger
from .models import db

login_manager = LoginManager()
socketio = SocketIO()


def create_app(config_class=Config, reply_generator=None):
    """
    Create and wire the chat relay application.

    Args:
        config_class: Configuration object; tests pass a Config subclass.
        reply_generator: Optional object with `generate_response(text)`;
            defaults to a ReplyGenerator built from configuration.

    Returns:
        Flask: the configured application. `socketio` is initialised on it.
    """
    from .services import EXTENSION_KEY, RelayServices
    from .services.conversation_store import ConversationStore
    from .services.credentials import CredentialIssuer
    from .services.identity_store import IdentityStore
    from .services.message_relay import MessageRelay
    from .services.reply_generator import ReplyGenerator
    from .storage.selector import StorageMode, StorageSelector, resolve_storage_mode

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config['SQLALCHEMY_DATABASE_URI'] = app.config['DATABASE_URI']

    logger.set_log_level(config_class.LOG_LEVEL)
    for warning in config_class.validate_configuration():
        logger.warning(f"Configuration: {warning}")

    origins = app.config.get('CORS_ORIGINS', '*')
    CORS(app, origins=origins if origins == '*' else [o.strip() for o in origins.split(',')])

    # Storage: bind the database, then probe it exactly once
    requested_mode = app.config.get('STORAGE_MODE', 'auto')
    try:
        db.init_app(app)
    except (ImportError, SQLAlchemyError) as e:
        logger.warning(f"Database engine could not be created: {e}")
        requested_mode = StorageMode.EPHEMERAL.value
    mode = resolve_storage_mode(app, requested_mode)
    storage = StorageSelector(mode)
    logger.info(f"Storage mode: {mode.value}")

    identities = IdentityStore(storage)
    conversations = ConversationStore(storage)
    credentials = CredentialIssuer(
        app.config['JWT_SECRET'],
        algorithm=app.config.get('JWT_ALGORITHM', 'HS256'),
        validity=timedelta(hours=app.config.get('JWT_EXPIRES_HOURS', 24)),
    )
    relay = MessageRelay(conversations, reply_generator or ReplyGenerator.from_config(app.config))

    app.extensions[EXTENSION_KEY] = RelayServices(
        storage=storage,
        identities=identities,
        conversations=conversations,
        credentials=credentials,
        relay=relay,
    )

    # Authentication: bearer tokens only, no cookie sessions
    from .auth import auth_bp, load_user_from_request
    login_manager.init_app(app)
    login_manager.request_loader(load_user_from_request)

    # HTTP surface
    from .api import api_bp
    from .api.chat import chat_bp, register_chat_socketio_handlers
    from .utils.api_response_utils import format_chat_relay_error
    from .utils.error_handling import ChatRelayError

    app.register_blueprint(api_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(chat_bp)
    app.register_error_handler(ChatRelayError, format_chat_relay_error)

    # Live-connection surface
    socketio.init_app(
        app,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'threading'),
        cors_allowed_origins=origins if origins == '*' else [o.strip() for o in origins.split(',')],
        logger=False,
        engineio_logger=False,
    )
    register_chat_socketio_handlers(socketio)

    logger.info(f"{config_class.APP_NAME} {config_class.VERSION} initialised")
    return app


__all__ = ['create_app', 'socketio', 'db']
