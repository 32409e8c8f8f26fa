"""
Conversation persistence over the dual storage backends.

Messages are append-only. A write the primary backend rejects is retried
once on the in-memory fallback so an accepted message is never dropped
silently; reads merge both backends so those rescued messages still show up
in the owner's history.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, List, Optional

from ..config import Config
from ..models import MESSAGES, Message, OwnerRef, Role, utc_now
from ..storage.selector import StorageSelector
from ..utils.error_handling import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = Config.DEFAULT_HISTORY_LIMIT
DEFAULT_OFFSET = 0
DEFAULT_PAIR_COUNT = Config.DEFAULT_RECENT_PAIRS


def _clamp(value: Any, default: int, minimum: int = 0) -> int:
    """Coerce a caller-supplied pagination value to an int of at least `minimum`.

    Anything else (missing, non-numeric, too small) yields `default`, so
    `?limit=0` behaves like an omitted limit.
    """
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= minimum else default


class ConversationStore:
    def __init__(self, storage: StorageSelector):
        self.storage = storage
        self._clock_lock = threading.Lock()
        self._last_stamp: Optional[datetime] = None

    def _stamp(self) -> datetime:
        # Strictly increasing for this store, whichever backend takes the write
        with self._clock_lock:
            now = utc_now()
            if self._last_stamp is not None and now <= self._last_stamp:
                now = self._last_stamp + timedelta(microseconds=1)
            self._last_stamp = now
            return now

    def append(self, owner: OwnerRef, content: str, role) -> Message:
        """
        Persist one message and return it as stored.

        Raises:
            ValidationError: empty content or unknown role.
            PersistenceError: both the primary and the fallback write failed.
        """
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Message content must not be empty")
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(f"Unknown message role: {role!r}")

        record = {
            'id': None,
            'owner_id': owner.value,
            'content': content,
            'role': role.value,
            'created_at': self._stamp(),
        }
        try:
            stored = self.storage.primary.write(MESSAGES, record)
        except PersistenceError as e:
            if not self.storage.has_separate_fallback:
                raise
            logger.warning(
                f"Primary write of {role.value} message for {owner} failed ({e}); "
                f"storing it in memory instead"
            )
            try:
                stored = self.storage.fallback.write(MESSAGES, record)
            except PersistenceError as fallback_error:
                raise PersistenceError("Failed to store message", cause=fallback_error)
        return Message.from_record(stored)

    def _newest_first(self, owner: OwnerRef, window: int) -> List[Message]:
        """Up to `window` newest messages of the owner across both backends"""
        predicate = {'owner_id': owner.value}
        records = self.storage.primary.read(
            MESSAGES, predicate, order_by='created_at', descending=True, limit=window
        )
        if not self.storage.has_separate_fallback:
            return [Message.from_record(r) for r in records]

        rescued = self.storage.fallback.read(
            MESSAGES, predicate, order_by='created_at', descending=True, limit=window
        )
        if not rescued:
            return [Message.from_record(r) for r in records]
        ranked = [(Message.from_record(r), 0) for r in records]
        ranked += [(Message.from_record(r), 1) for r in rescued]
        ranked.sort(key=lambda item: (item[0].created_at, item[1]), reverse=True)
        return [message for message, _ in ranked[:window]]

    def history(self, owner: OwnerRef, limit: Any = DEFAULT_LIMIT,
                offset: Any = DEFAULT_OFFSET) -> List[Message]:
        """
        One page of the owner's conversation, oldest first.

        Messages are ranked newest first, `offset` of them skipped and `limit`
        taken, then the page is reversed into chronological order.
        """
        limit = _clamp(limit, DEFAULT_LIMIT, minimum=1)
        offset = _clamp(offset, DEFAULT_OFFSET)

        if not self.storage.has_separate_fallback:
            records = self.storage.primary.read(
                MESSAGES, {'owner_id': owner.value},
                order_by='created_at', descending=True, offset=offset, limit=limit
            )
            page = [Message.from_record(r) for r in records]
        else:
            page = self._newest_first(owner, offset + limit)[offset:offset + limit]
        page.reverse()
        return page

    def recent(self, owner: OwnerRef, pair_count: Any = DEFAULT_PAIR_COUNT) -> List[Message]:
        """The last `pair_count` user/bot turns, oldest first"""
        pair_count = _clamp(pair_count, DEFAULT_PAIR_COUNT, minimum=1)
        return self.history(owner, limit=pair_count * 2, offset=0)

    def delete_all(self, owner: OwnerRef) -> int:
        """Irreversibly remove every message of the owner; returns the count"""
        predicate = {'owner_id': owner.value}
        removed = self.storage.primary.delete(MESSAGES, predicate)
        if self.storage.has_separate_fallback:
            removed += self.storage.fallback.delete(MESSAGES, predicate)
        logger.info(f"Deleted {removed} messages for {owner}")
        return removed
