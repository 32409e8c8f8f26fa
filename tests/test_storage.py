"""
Tests for the storage backends and startup mode resolution
"""

import unittest

from chat_relay.models import MESSAGES, USERS, OwnerRef, utc_now
from chat_relay.storage import EphemeralBackend, StorageMode, StorageSelector
from chat_relay.utils.error_handling import DuplicateRecordError, PersistenceError

from tests.support import (EphemeralTestConfig, RelayAppTestCase,
                           UnreachableDatabaseConfig)


def user_record(username, email, user_id=None):
    return {
        'id': user_id or OwnerRef.new().value,
        'username': username,
        'email': email,
        'password_hash': 'hash',
        'avatar': '',
        'created_at': utc_now(),
        'last_login_at': None,
    }


class TestEphemeralBackend(unittest.TestCase):

    def setUp(self):
        self.backend = EphemeralBackend()

    def test_assigns_strictly_increasing_ids(self):
        ids = [
            int(self.backend.write(MESSAGES, {'id': None, 'owner_id': 'o', 'content': str(i)})['id'])
            for i in range(50)
        ]
        self.assertEqual(ids, sorted(set(ids)))

    def test_read_filters_by_predicate(self):
        self.backend.write(MESSAGES, {'owner_id': 'a', 'content': 'one'})
        self.backend.write(MESSAGES, {'owner_id': 'b', 'content': 'two'})
        found = self.backend.read(MESSAGES, {'owner_id': 'a'})
        self.assertEqual([r['content'] for r in found], ['one'])
        self.assertEqual(len(self.backend.read(MESSAGES, {})), 2)

    def test_ties_keep_insertion_order(self):
        stamp = utc_now()
        for content in ('first', 'second', 'third'):
            self.backend.write(MESSAGES, {'owner_id': 'a', 'content': content, 'created_at': stamp})

        ascending = self.backend.read(MESSAGES, {}, order_by='created_at')
        descending = self.backend.read(MESSAGES, {}, order_by='created_at', descending=True)
        self.assertEqual([r['content'] for r in ascending], ['first', 'second', 'third'])
        self.assertEqual([r['content'] for r in descending], ['third', 'second', 'first'])

    def test_offset_and_limit(self):
        for i in range(10):
            self.backend.write(MESSAGES, {'owner_id': 'a', 'content': str(i), 'created_at': i})
        page = self.backend.read(MESSAGES, {}, order_by='created_at', offset=3, limit=4)
        self.assertEqual([r['content'] for r in page], ['3', '4', '5', '6'])

    def test_write_with_existing_id_replaces(self):
        stored = self.backend.write(USERS, user_record('alice', 'a@x.com'))
        stored['avatar'] = 'cat.png'
        self.backend.write(USERS, stored)
        self.assertEqual(self.backend.count(USERS), 1)
        self.assertEqual(self.backend.read(USERS, {'id': stored['id']})[0]['avatar'], 'cat.png')

    def test_unique_username_and_email(self):
        self.backend.write(USERS, user_record('alice', 'a@x.com'))
        with self.assertRaises(DuplicateRecordError) as ctx:
            self.backend.write(USERS, user_record('alice', 'other@x.com'))
        self.assertEqual(ctx.exception.field, 'username')
        with self.assertRaises(DuplicateRecordError):
            self.backend.write(USERS, user_record('bob', 'a@x.com'))

    def test_returned_records_are_copies(self):
        self.backend.write(MESSAGES, {'owner_id': 'a', 'content': 'original'})
        self.backend.read(MESSAGES, {})[0]['content'] = 'changed'
        self.assertEqual(self.backend.read(MESSAGES, {})[0]['content'], 'original')

    def test_delete_returns_count(self):
        for owner in ('a', 'a', 'b'):
            self.backend.write(MESSAGES, {'owner_id': owner, 'content': 'x'})
        self.assertEqual(self.backend.delete(MESSAGES, {'owner_id': 'a'}), 2)
        self.assertEqual(self.backend.count(MESSAGES), 1)


class TestStorageSelector(unittest.TestCase):

    def test_ephemeral_mode_uses_one_backend(self):
        selector = StorageSelector(StorageMode.EPHEMERAL)
        self.assertIs(selector.primary, selector.fallback)
        self.assertFalse(selector.has_separate_fallback)
        self.assertEqual(selector.current_mode(), StorageMode.EPHEMERAL)

    def test_passthrough_goes_to_primary(self):
        backend = EphemeralBackend()
        selector = StorageSelector('ephemeral', ephemeral=backend)
        selector.write(MESSAGES, {'owner_id': 'a', 'content': 'x'})
        self.assertEqual(backend.count(MESSAGES), 1)
        self.assertEqual(len(selector.read(MESSAGES, {'owner_id': 'a'})), 1)
        self.assertEqual(selector.delete(MESSAGES, {'owner_id': 'a'}), 1)


class TestDurableBackend(RelayAppTestCase):

    def setUp(self):
        super().setUp()
        self.backend = self.services.storage.primary

    def test_probe_selects_durable_mode(self):
        self.assertEqual(self.services.storage.current_mode(), StorageMode.DURABLE)
        self.assertTrue(self.services.storage.has_separate_fallback)

    def test_message_ids_are_strings(self):
        user = self.backend.write(USERS, user_record('alice', 'a@x.com'))
        stored = self.backend.write(MESSAGES, {
            'owner_id': user['id'], 'content': 'hi', 'role': 'user', 'created_at': utc_now(),
        })
        self.assertIsInstance(stored['id'], str)
        self.assertEqual(self.backend.read(MESSAGES, {'id': int(stored['id'])})[0]['content'], 'hi')

    def test_duplicate_username_is_reported(self):
        self.backend.write(USERS, user_record('alice', 'a@x.com'))
        with self.assertRaises(DuplicateRecordError):
            self.backend.write(USERS, user_record('alice', 'b@x.com'))
        # The failed write must not poison the session for later calls
        self.backend.write(USERS, user_record('bob', 'b@x.com'))
        self.assertEqual(len(self.backend.read(USERS, {})), 2)

    def test_message_for_unknown_owner_is_rejected(self):
        with self.assertRaises(PersistenceError) as ctx:
            self.backend.write(MESSAGES, {
                'owner_id': OwnerRef.new().value, 'content': 'hi',
                'role': 'user', 'created_at': utc_now(),
            })
        self.assertNotIsInstance(ctx.exception, DuplicateRecordError)

    def test_ordering_and_slicing(self):
        user = self.backend.write(USERS, user_record('alice', 'a@x.com'))
        stamp = utc_now()
        for i in range(5):
            self.backend.write(MESSAGES, {
                'owner_id': user['id'], 'content': str(i), 'role': 'user', 'created_at': stamp,
            })
        newest = self.backend.read(MESSAGES, {'owner_id': user['id']},
                                   order_by='created_at', descending=True, offset=1, limit=2)
        self.assertEqual([r['content'] for r in newest], ['3', '2'])

    def test_delete(self):
        user = self.backend.write(USERS, user_record('alice', 'a@x.com'))
        for _ in range(3):
            self.backend.write(MESSAGES, {
                'owner_id': user['id'], 'content': 'x', 'role': 'user', 'created_at': utc_now(),
            })
        self.assertEqual(self.backend.delete(MESSAGES, {'owner_id': user['id']}), 3)
        self.assertEqual(self.backend.read(MESSAGES, {'owner_id': user['id']}), [])


class TestForcedEphemeralMode(RelayAppTestCase):
    config_class = EphemeralTestConfig

    def test_configuration_skips_probe(self):
        self.assertEqual(self.services.storage.current_mode(), StorageMode.EPHEMERAL)
        self.assertIsInstance(self.services.storage.primary, EphemeralBackend)


class TestUnreachableDatabase(RelayAppTestCase):
    config_class = UnreachableDatabaseConfig

    def test_failed_probe_falls_back_for_the_process(self):
        self.assertEqual(self.services.storage.current_mode(), StorageMode.EPHEMERAL)
        identity = self.services.identities.register('alice', 'a@x.com', 'pw123')
        self.assertEqual(self.services.identities.find_by_id(identity.owner), identity)


if __name__ == '__main__':
    unittest.main()
