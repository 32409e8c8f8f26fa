"""
Centralized Logging System for the Chat Relay
Provides structured logging with optional file rotation and error handling decorators
"""

import logging
import logging.handlers
import os
import sys
import threading
import time
from datetime import datetime
from functools import wraps
from flask import jsonify
from .config import Config


class RelayLogger:
    """Centralized logger for the chat relay"""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(RelayLogger, cls).__new__(cls)
                    cls._instance._logger = None
                    cls._instance._setup_logger()
        return cls._instance

    def _setup_logger(self):
        """Setup the main application logger"""
        self._logger = logging.getLogger('chat_relay')
        self._logger.setLevel(getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO))

        # Clear existing handlers
        self._logger.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO))
        console_handler.setFormatter(formatter)
        self._logger.addHandler(console_handler)

        # File handler with rotation, only when a path is configured
        if Config.LOG_FILE_PATH:
            try:
                log_dir = os.path.dirname(Config.LOG_FILE_PATH)
                if log_dir:
                    os.makedirs(log_dir, exist_ok=True)

                file_handler = logging.handlers.RotatingFileHandler(
                    Config.LOG_FILE_PATH,
                    maxBytes=Config.LOG_MAX_BYTES,
                    backupCount=Config.LOG_BACKUP_COUNT,
                    encoding='utf-8'
                )
                file_handler.setLevel(getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO))
                file_handler.setFormatter(formatter)
                self._logger.addHandler(file_handler)
            except OSError as e:
                self._logger.error(f"Failed to setup file logging: {e}")

        self._logger.info(f"{Config.APP_NAME} {Config.VERSION} - Logging system initialized")
        self._logger.debug(f"Log level: {Config.LOG_LEVEL}")

    def debug(self, message, **kwargs):
        self._logger.debug(message, **kwargs)

    def info(self, message, **kwargs):
        self._logger.info(message, **kwargs)

    def warning(self, message, **kwargs):
        self._logger.warning(message, **kwargs)

    def error(self, message, **kwargs):
        self._logger.error(message, **kwargs)

    def log_exception(self, exception, context=None):
        """
        Log exception with structured context

        Args:
            exception: The exception that occurred
            context: Additional context information

        Returns:
            The structured error context that was logged
        """
        error_context = {
            'exception_type': type(exception).__name__,
            'exception_message': str(exception),
            'timestamp': datetime.now().isoformat(),
            'context': context or {}
        }

        try:
            from flask import request, has_request_context
            if has_request_context():
                error_context['request'] = {
                    'method': request.method,
                    'endpoint': request.endpoint,
                    'url': request.url,
                    'ip': request.remote_addr,
                }
        except RuntimeError:
            pass

        self._logger.error(
            f"Exception: {error_context['exception_type']}: {error_context['exception_message']}",
            extra={'error_context': error_context},
            exc_info=exception
        )
        return error_context

    def log_user_action(self, user_id, action, details=None):
        """Log user actions for auditing"""
        message = f"User {user_id} - {action}"
        if details:
            message += f" - {details}"
        self._logger.info(message)

    def log_api_request(self, endpoint, method, user_id=None, ip_address=None):
        """Log API requests"""
        message = f"API {method} {endpoint}"
        if user_id:
            message += f" - User: {user_id}"
        if ip_address:
            message += f" - IP: {ip_address}"
        self._logger.info(message)

    def set_log_level(self, level):
        """Change the logging level"""
        try:
            log_level = getattr(logging, level.upper())
        except AttributeError:
            self._logger.error(f"Invalid log level: {level}")
            return
        self._logger.setLevel(log_level)
        for handler in self._logger.handlers:
            handler.setLevel(log_level)
        self._logger.info(f"Log level changed to {level.upper()}")


# Global logger instance
logger = RelayLogger()


# Convenience functions
def log_info(message, **kwargs):
    logger.info(message, **kwargs)


def log_warning(message, **kwargs):
    logger.warning(message, **kwargs)


def log_error(message, **kwargs):
    logger.error(message, **kwargs)


def log_debug(message, **kwargs):
    logger.debug(message, **kwargs)


def log_user_action(user_id, action, details=None):
    logger.log_user_action(user_id, action, details)


def log_api_request(endpoint, method, user_id=None, ip_address=None):
    logger.log_api_request(endpoint, method, user_id, ip_address)


def log_execution_time(func):
    """Decorator to log function execution time"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
            logger.debug(f"Function {func.__name__} executed in {time.time() - start_time:.3f}s")
            return result
        except Exception as e:
            logger.error(f"Function {func.__name__} failed after {time.time() - start_time:.3f}s: {str(e)}")
            raise
    return wrapper


def handle_api_errors(f):
    """
    Decorator that turns unexpected exceptions into a generic 500 body.

    Domain errors (ChatRelayError) pass through untouched so the blueprint
    error handlers can map them to their own status codes.
    """
    @wraps(f)
    def wrapper(*args, **kwargs):
        from .utils.error_handling import ChatRelayError
        try:
            return f(*args, **kwargs)
        except ChatRelayError:
            raise
        except Exception as e:
            error_context = logger.log_exception(e, {'function': f.__name__})
            return jsonify({
                'error': 'Internal server error',
                'error_type': 'internal_error',
                'error_id': error_context.get('timestamp', 'unknown')
            }), 500
    return wrapper
