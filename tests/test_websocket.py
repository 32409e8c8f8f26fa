"""
Tests for the Socket.IO chat transport
"""

import unittest

from chat_relay import socketio
from chat_relay.api.chat.websocket_handlers import connection_manager
from chat_relay.services.message_relay import APOLOGY_MESSAGE

from tests.support import EphemeralTestConfig, FailingReplyGenerator, RelayAppTestCase


def events(client, name):
    return [event['args'] for event in client.get_received() if event['name'] == name]


class TestWebSocketChat(RelayAppTestCase):

    def setUp(self):
        super().setUp()
        self.token = self.token_for()
        self.owner = self.services.credentials.verify(self.token).owner

    def test_send_message_receives_reply(self):
        client = self.socket_client(self.token)
        self.assertTrue(client.is_connected())

        client.emit('sendMessage', 'hi')
        self.assertEqual(events(client, 'receiveMessage'), [['hello']])

        history = self.services.conversations.history(self.owner)
        self.assertEqual([m.content for m in history], ['hi', 'hello'])
        client.disconnect()

    def test_dict_payload_is_accepted(self):
        client = self.socket_client(self.token)
        client.emit('sendMessage', {'message': 'hi'})
        self.assertEqual(events(client, 'receiveMessage'), [['hello']])
        client.disconnect()

    def test_empty_message_emits_error(self):
        client = self.socket_client(self.token)
        client.emit('sendMessage', '  ')
        received = client.get_received()
        self.assertEqual([event['name'] for event in received], ['error'])
        self.assertEqual(self.services.conversations.history(self.owner), [])
        client.disconnect()

    def test_connection_without_valid_token_is_refused(self):
        before = connection_manager.count()
        for auth in (None, {}, {'token': 'not-a-token'}):
            client = socketio.test_client(self.app, auth=auth)
            self.assertFalse(client.is_connected())
        self.assertEqual(connection_manager.count(), before)

    def test_disconnect_forgets_connection(self):
        before = connection_manager.count()
        client = self.socket_client(self.token)
        self.assertEqual(connection_manager.count(), before + 1)
        client.disconnect()
        self.assertEqual(connection_manager.count(), before)


class TestWebSocketGenerationFailure(RelayAppTestCase):
    config_class = EphemeralTestConfig

    def make_reply_generator(self):
        return FailingReplyGenerator()

    def test_failure_delivers_apology_and_keeps_inbound(self):
        token = self.token_for()
        owner = self.services.credentials.verify(token).owner
        client = self.socket_client(token)

        client.emit('sendMessage', 'hi')
        self.assertEqual(events(client, 'receiveMessage'), [[APOLOGY_MESSAGE]])

        history = self.services.conversations.history(owner)
        self.assertEqual([(m.role.value, m.content) for m in history], [('user', 'hi')])
        client.disconnect()


if __name__ == '__main__':
    unittest.main()
