"""
Core services of the chat relay.

Construction order matters and is driven explicitly by `create_app`:
storage mode first, then the stores, then the relay. The assembled bundle
is kept on `app.extensions['chat_relay']` and looked up per request with
`get_services()`.
"""

from dataclasses import dataclass

from flask import current_app

from ..storage.selector import StorageSelector
from .conversation_store import ConversationStore
from .credentials import CredentialIssuer
from .identity_store import IdentityStore
from .message_relay import APOLOGY_MESSAGE, MessageRelay
from .reply_generator import ReplyGenerator

EXTENSION_KEY = 'chat_relay'


@dataclass
class RelayServices:
    storage: StorageSelector
    identities: IdentityStore
    conversations: ConversationStore
    credentials: CredentialIssuer
    relay: MessageRelay


def get_services() -> RelayServices:
    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    'ConversationStore', 'CredentialIssuer', 'IdentityStore',
    'MessageRelay', 'APOLOGY_MESSAGE', 'ReplyGenerator',
    'RelayServices', 'get_services', 'EXTENSION_KEY',
]
