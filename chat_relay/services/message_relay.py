"""
One chat exchange, end to end.

    Authenticated -> PersistInbound -> GenerateReply -> PersistOutbound -> Respond

The caller has already verified the credential and hands over an OwnerRef.
An exchange ends either Delivered (reply returned) or Rejected (inbound
message could not be stored). Nothing here retries; both transports decide
for themselves whether to resend the whole exchange.

The transports deliberately diverge on reply-generation failure: the HTTP
path surfaces GenerationError as a 500, the live connection swallows it into
APOLOGY_MESSAGE via `exchange_or_apologize`.
"""

import logging

from ..models import OwnerRef, Role
from ..utils.error_handling import GenerationError, PersistenceError
from .conversation_store import ConversationStore

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "Sorry, I can't answer right now. Please try again later."


class MessageRelay:
    def __init__(self, conversations: ConversationStore, reply_generator):
        """
        Args:
            conversations: Store the exchange persists both turns into
            reply_generator: Anything with `generate_response(text) -> str`
        """
        self.conversations = conversations
        self.reply_generator = reply_generator

    def exchange(self, owner: OwnerRef, text: str) -> str:
        """
        Run one exchange and return the reply text.

        Raises:
            ValidationError: empty message; nothing stored.
            PersistenceError: inbound message could not be stored; no reply
                is generated for an unrecorded message.
            GenerationError: reply service failed; the inbound message stays
                stored.
        """
        self.conversations.append(owner, text, Role.USER)

        try:
            reply = self.reply_generator.generate_response(text)
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Reply generator raised unexpectedly: {e}")
            raise GenerationError("Unable to get AI reply", cause=e)

        try:
            self.conversations.append(owner, reply, Role.BOT)
        except PersistenceError as e:
            # Delivery is not blocked by a failed log of the reply
            logger.error(f"Failed to store reply for {owner}: {e}")

        return reply

    def exchange_or_apologize(self, owner: OwnerRef, text: str) -> str:
        """Live-connection variant: reply failures become the apology text"""
        try:
            return self.exchange(owner, text)
        except GenerationError as e:
            logger.warning(f"Reply generation failed for {owner}, sending apology: {e}")
            return APOLOGY_MESSAGE
