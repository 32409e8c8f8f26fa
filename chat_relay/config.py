"""
Centralized Configuration Management for the Chat Relay.

All settings are read from environment variables (optionally loaded from a
`.env` file) with development-friendly defaults. The class attributes are
read once at import time; tests and embedding applications subclass
`Config` to override individual values.

Example:
    >>> from chat_relay.config import Config
    >>> Config.DATABASE_URI
    'sqlite:///chat_relay.db'
"""

import os
import secrets
import logging
from dotenv import load_dotenv

# Application version
CHAT_RELAY_VERSION = "1.0.0"

# Load environment variables
load_dotenv()

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant. Please give friendly and accurate answers."


def _env_flag(name, default='False'):
    return os.getenv(name, default).lower() in ('true', '1', 'yes', 'on')


class Config:
    """
    Application configuration.

    Attributes:
        SECRET_KEY (str): Flask secret key.
        JWT_SECRET (str): Signing secret for bearer credentials.
        JWT_EXPIRES_HOURS (int): Credential validity window in hours.
        DATABASE_URI (str): Durable backend connection string.
        STORAGE_MODE (str): 'auto' probes the database, 'ephemeral' skips it.
        LLM_API_URL (str): Chat-completions endpoint of the reply service.
    """

    # Application Info
    VERSION = CHAT_RELAY_VERSION
    APP_NAME = "Chat Relay"

    # Security Configuration
    _default_secret_key = 'dev-secret-key-change-in-production'
    _raw_secret_key = os.getenv('SECRET_KEY', _default_secret_key)

    if _raw_secret_key == _default_secret_key and not _env_flag('FLASK_DEBUG'):
        # Generate a cryptographically secure random key
        SECRET_KEY = secrets.token_hex(32)
        logging.warning(
            "Default SECRET_KEY detected outside debug mode. "
            "A random key has been generated for this process; tokens will not survive a restart."
        )
    else:
        SECRET_KEY = _raw_secret_key

    JWT_SECRET = os.getenv('JWT_SECRET', '') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_HOURS = int(os.getenv('JWT_EXPIRES_HOURS', '24'))

    # Database
    DATABASE_URI = os.getenv('DATABASE_URI', 'sqlite:///chat_relay.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
    }
    STORAGE_MODE = os.getenv('STORAGE_MODE', 'auto').lower()

    # Reply generation service (OpenAI-compatible chat completions)
    LLM_API_URL = os.getenv('LLM_API_URL', 'https://api.deepseek.com/v1/chat/completions')
    LLM_API_KEY = os.getenv('LLM_API_KEY', os.getenv('DEEPSEEK_API_KEY', ''))
    LLM_MODEL = os.getenv('LLM_MODEL', 'deepseek-reasoner')
    LLM_TIMEOUT = int(os.getenv('LLM_TIMEOUT', '60'))
    LLM_TEMPERATURE = float(os.getenv('LLM_TEMPERATURE', '0.7'))
    LLM_MAX_TOKENS = int(os.getenv('LLM_MAX_TOKENS', '1000'))
    LLM_SYSTEM_PROMPT = os.getenv('LLM_SYSTEM_PROMPT', DEFAULT_SYSTEM_PROMPT)

    # Server Configuration
    PORT = int(os.getenv('PORT', '3000'))
    HOST = os.getenv('HOST', '0.0.0.0')
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')
    SOCKETIO_ASYNC_MODE = os.getenv('SOCKETIO_ASYNC_MODE', 'threading')

    # Message limits
    MAX_MESSAGE_LENGTH = int(os.getenv('MAX_MESSAGE_LENGTH', '10000'))
    DEFAULT_HISTORY_LIMIT = 50
    DEFAULT_RECENT_PAIRS = 10

    # Logging Configuration
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE_PATH = os.getenv('LOG_FILE_PATH', '')
    LOG_MAX_BYTES = int(os.getenv('LOG_MAX_BYTES', '10485760'))  # 10MB
    LOG_BACKUP_COUNT = int(os.getenv('LOG_BACKUP_COUNT', '5'))

    # Development Settings
    DEBUG = _env_flag('FLASK_DEBUG')
    TESTING = _env_flag('TESTING')

    @classmethod
    def validate_configuration(cls):
        """Return a list of configuration warnings; never raises."""
        warnings = []
        if cls.SECRET_KEY == cls._default_secret_key:
            warnings.append("SECRET_KEY is the development default")
        if not cls.LLM_API_KEY:
            warnings.append("LLM_API_KEY is not set; reply generation will fail")
        if cls.STORAGE_MODE not in ('auto', 'ephemeral'):
            warnings.append(f"Unknown STORAGE_MODE '{cls.STORAGE_MODE}', treating as 'auto'")
        if cls.JWT_EXPIRES_HOURS <= 0:
            warnings.append("JWT_EXPIRES_HOURS must be positive")
        return warnings

    @classmethod
    def get_config_dict(cls):
        """Non-secret settings, for diagnostics."""
        return {
            'version': cls.VERSION,
            'database_uri': cls.DATABASE_URI,
            'storage_mode': cls.STORAGE_MODE,
            'llm_api_url': cls.LLM_API_URL,
            'llm_model': cls.LLM_MODEL,
            'host': cls.HOST,
            'port': cls.PORT,
            'socketio_async_mode': cls.SOCKETIO_ASYNC_MODE,
            'log_level': cls.LOG_LEVEL,
            'log_file_path': cls.LOG_FILE_PATH,
        }
