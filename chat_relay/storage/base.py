"""
Storage capability shared by the durable and ephemeral backends.

Records are plain dicts whose keys are the column names declared in
`chat_relay.models`. A predicate is a mapping of field name to the value it
must equal; an empty predicate matches every record of the collection.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

Record = Dict[str, Any]
Predicate = Mapping[str, Any]


class StorageBackend(ABC):
    """Uniform read/write/delete surface over one physical store"""

    name = 'abstract'

    @abstractmethod
    def read(self, collection: str, predicate: Predicate,
             order_by: Optional[str] = None, descending: bool = False,
             offset: int = 0, limit: Optional[int] = None) -> List[Record]:
        """Return matching records, optionally sorted and sliced.

        Sorting is by `order_by`, with insertion order breaking ties, so two
        records stamped with the same timestamp keep a stable relative order.
        """

    @abstractmethod
    def write(self, collection: str, record: Record) -> Record:
        """Insert the record, or replace the stored one with the same id.

        A record without an id gets one assigned by the backend. Returns the
        record as stored.

        Raises:
            DuplicateRecordError: a uniqueness constraint was violated.
            PersistenceError: any other storage failure.
        """

    @abstractmethod
    def delete(self, collection: str, predicate: Predicate) -> int:
        """Remove matching records and return how many were removed."""


def matches(record: Record, predicate: Predicate) -> bool:
    return all(record.get(field) == value for field, value in predicate.items())
