"""
Shared fixtures for the chat relay test suite
"""

import unittest

from chat_relay import create_app, socketio
from chat_relay.config import Config
from chat_relay.models import db
from chat_relay.services import get_services
from chat_relay.utils.error_handling import GenerationError


class RelayTestConfig(Config):
    """Durable mode on a private in-memory SQLite database"""
    TESTING = True
    DEBUG = False
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET = 'test-jwt-secret'
    DATABASE_URI = 'sqlite:///:memory:'
    STORAGE_MODE = 'auto'
    LLM_API_KEY = 'test-key'
    LLM_API_URL = 'http://reply-service.invalid/v1/chat/completions'
    LOG_LEVEL = 'WARNING'


class EphemeralTestConfig(RelayTestConfig):
    """Forces the in-memory backend without probing any database"""
    STORAGE_MODE = 'ephemeral'


class UnreachableDatabaseConfig(RelayTestConfig):
    """Points at a directory that does not exist, so the startup probe fails"""
    DATABASE_URI = 'sqlite:////nonexistent-chat-relay-dir/nested/relay.db'


class FakeReplyGenerator:
    """Stand-in for the remote reply service"""

    def __init__(self, reply='hello', error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def generate_response(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.reply


class FailingReplyGenerator(FakeReplyGenerator):
    def __init__(self):
        super().__init__(error=GenerationError("Reply service returned status 503"))


class RelayAppTestCase(unittest.TestCase):
    """Builds a fresh application per test with an app context pushed"""

    config_class = RelayTestConfig

    def make_reply_generator(self):
        return FakeReplyGenerator()

    def setUp(self):
        self.reply_generator = self.make_reply_generator()
        self.app = create_app(self.config_class, reply_generator=self.reply_generator)
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.client = self.app.test_client()
        self.services = get_services()

    def tearDown(self):
        if self.services.storage.current_mode().value == 'durable':
            db.session.remove()
            db.drop_all()
        self.app_context.pop()

    def register(self, username='alice', email='a@x.com', password='pw123'):
        return self.client.post('/api/register', json={
            'username': username, 'email': email, 'password': password,
        })

    def token_for(self, username='alice', email='a@x.com', password='pw123'):
        response = self.register(username, email, password)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()['token']

    @staticmethod
    def auth_headers(token):
        return {'Authorization': f'Bearer {token}'}

    def socket_client(self, token):
        return socketio.test_client(self.app, auth={'token': token})
