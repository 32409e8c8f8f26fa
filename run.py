"""
Main entry point for the Chat Relay server.

Builds the application (which resolves the storage mode once) and serves
HTTP and Socket.IO on the same port.

Example:
    $ python run.py

    Or with environment variables:

    $ FLASK_DEBUG=true HOST=0.0.0.0 PORT=3000 python run.py
"""

import signal
import sys

from chat_relay import create_app, socketio
from chat_relay.config import Config
from chat_relay.logger import log_debug, log_info


def signal_handler(signum, frame):
    """Exit cleanly on SIGINT/SIGTERM"""
    log_info(f"Received signal {signum}, shutting down")
    sys.exit(0)


def main():
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    app = create_app()
    host = Config.HOST
    port = Config.PORT
    debug = Config.DEBUG

    log_debug(f"Configuration: {Config.get_config_dict()}")
    log_info(f"Starting {Config.APP_NAME} on http://{host}:{port}")
    socketio.run(app, debug=debug, host=host, port=port,
                 allow_unsafe_werkzeug=True, use_reloader=False)


if __name__ == '__main__':
    main()
