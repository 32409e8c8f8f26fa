"""
SQL storage backend on top of Flask-SQLAlchemy.

Every call runs inside the current application context and commits (or
rolls back) its own transaction, so a failed write never leaves the shared
session dirty for the next exchange.
"""

import logging
from contextlib import contextmanager
from typing import Dict, List, Optional, Type

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..models import MESSAGES, USERS, MessageRecord, UserRecord, db
from ..utils.error_handling import DuplicateRecordError, PersistenceError
from .base import Predicate, Record, StorageBackend

logger = logging.getLogger(__name__)

COLLECTION_MODELS: Dict[str, Type[db.Model]] = {
    USERS: UserRecord,
    MESSAGES: MessageRecord,
}


@contextmanager
def safe_db_transaction():
    """Commit on success, roll back on any error"""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


class DurableBackend(StorageBackend):
    name = 'durable'

    def _model(self, collection: str):
        try:
            return COLLECTION_MODELS[collection]
        except KeyError:
            raise PersistenceError(f"Unknown collection: {collection}")

    @staticmethod
    def _to_record(model, row) -> Record:
        record = {column.name: getattr(row, column.name) for column in model.__table__.columns}
        if model is MessageRecord:
            record['id'] = str(record['id'])
        return record

    def read(self, collection: str, predicate: Predicate,
             order_by: Optional[str] = None, descending: bool = False,
             offset: int = 0, limit: Optional[int] = None) -> List[Record]:
        model = self._model(collection)
        try:
            query = model.query.filter_by(**predicate)
            if order_by:
                column = getattr(model, order_by)
                if descending:
                    query = query.order_by(column.desc(), model.id.desc())
                else:
                    query = query.order_by(column.asc(), model.id.asc())
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            return [self._to_record(model, row) for row in query.all()]
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Durable read from {collection} failed: {e}")
            raise PersistenceError(f"Failed to read {collection}", cause=e)

    def write(self, collection: str, record: Record) -> Record:
        model = self._model(collection)
        fields = dict(record)
        record_id = fields.pop('id', None)
        try:
            with safe_db_transaction() as session:
                row = session.get(model, record_id) if record_id is not None else None
                if row is None:
                    row = model(**fields) if record_id is None else model(id=record_id, **fields)
                    session.add(row)
                else:
                    for key, value in fields.items():
                        setattr(row, key, value)
                session.flush()
                stored = self._to_record(model, row)
            return stored
        except IntegrityError as e:
            text = str(e.orig).lower() if e.orig is not None else str(e).lower()
            if 'unique' in text or 'duplicate' in text:
                raise DuplicateRecordError(f"Duplicate value in {collection}", cause=e)
            logger.warning(f"Durable write to {collection} rejected: {e.orig}")
            raise PersistenceError(f"Failed to write {collection}", cause=e)
        except SQLAlchemyError as e:
            logger.error(f"Durable write to {collection} failed: {e}")
            raise PersistenceError(f"Failed to write {collection}", cause=e)

    def delete(self, collection: str, predicate: Predicate) -> int:
        model = self._model(collection)
        try:
            with safe_db_transaction():
                removed = model.query.filter_by(**predicate).delete(synchronize_session=False)
            return removed
        except SQLAlchemyError as e:
            logger.error(f"Durable delete from {collection} failed: {e}")
            raise PersistenceError(f"Failed to delete from {collection}", cause=e)
