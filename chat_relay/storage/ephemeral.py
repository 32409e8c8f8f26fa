"""
In-process storage backend.

Used for the whole process lifetime when the database is unreachable at
startup, and as the last-resort target for message writes the durable
backend rejects. Contents are lost on restart.
"""

import threading
import time
from typing import Dict, List, Optional, Sequence

from ..utils.error_handling import DuplicateRecordError
from .base import Predicate, Record, StorageBackend, matches

DEFAULT_UNIQUE_FIELDS = {
    'users': ('username', 'email'),
}


class EphemeralBackend(StorageBackend):
    """Dict-of-lists store guarded by a single lock.

    The lock is only held for list manipulation; nothing that can block on
    I/O runs while it is taken.
    """

    name = 'ephemeral'

    def __init__(self, unique_fields: Optional[Dict[str, Sequence[str]]] = None):
        self._collections: Dict[str, List[Record]] = {}
        self._unique_fields = DEFAULT_UNIQUE_FIELDS if unique_fields is None else unique_fields
        self._lock = threading.Lock()
        self._last_id = 0

    def _next_id(self) -> str:
        # Time-derived and strictly increasing, even within one clock tick
        now = time.time_ns()
        if now <= self._last_id:
            now = self._last_id + 1
        self._last_id = now
        return str(now)

    def read(self, collection: str, predicate: Predicate,
             order_by: Optional[str] = None, descending: bool = False,
             offset: int = 0, limit: Optional[int] = None) -> List[Record]:
        with self._lock:
            found = [
                (index, dict(record))
                for index, record in enumerate(self._collections.get(collection, []))
                if matches(record, predicate)
            ]

        if order_by:
            found.sort(key=lambda item: (item[1].get(order_by), item[0]), reverse=descending)
        elif descending:
            found.reverse()

        records = [record for _, record in found]
        end = None if limit is None else offset + limit
        return records[offset:end]

    def write(self, collection: str, record: Record) -> Record:
        stored = dict(record)
        with self._lock:
            rows = self._collections.setdefault(collection, [])
            if stored.get('id') is None:
                stored['id'] = self._next_id()

            position = None
            for index, existing in enumerate(rows):
                if existing['id'] == stored['id']:
                    position = index
                    continue
                for field in self._unique_fields.get(collection, ()):
                    if stored.get(field) is not None and existing.get(field) == stored.get(field):
                        raise DuplicateRecordError(
                            f"Duplicate value for {collection}.{field}", field=field
                        )

            if position is None:
                rows.append(stored)
            else:
                rows[position] = stored
        return dict(stored)

    def delete(self, collection: str, predicate: Predicate) -> int:
        with self._lock:
            rows = self._collections.get(collection, [])
            kept = [record for record in rows if not matches(record, predicate)]
            removed = len(rows) - len(kept)
            self._collections[collection] = kept
        return removed

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, []))
