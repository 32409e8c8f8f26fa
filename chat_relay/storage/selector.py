"""
Process-wide storage mode resolution.

The mode is decided exactly once, at application startup, by probing the
database. If the probe fails the process runs on the in-memory backend until
it exits; there is no background retry and no later promotion back to the
database. Staying available wins over waiting for the database to recover.
"""

import logging
from enum import Enum
from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError

from ..models import db
from .base import StorageBackend
from .durable import DurableBackend
from .ephemeral import EphemeralBackend

logger = logging.getLogger(__name__)


class StorageMode(str, Enum):
    DURABLE = 'durable'
    EPHEMERAL = 'ephemeral'


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def resolve_storage_mode(app, requested: str = 'auto') -> StorageMode:
    """
    Probe the configured database and pick the backend for this process.

    Args:
        app: Flask application whose Flask-SQLAlchemy extension is initialised.
        requested: 'ephemeral' skips the probe; anything else probes.

    Returns:
        StorageMode.DURABLE if tables could be created and a trivial query
        succeeded, StorageMode.EPHEMERAL otherwise.
    """
    if requested == StorageMode.EPHEMERAL.value:
        logger.info("Storage mode forced to ephemeral by configuration")
        return StorageMode.EPHEMERAL

    try:
        with app.app_context():
            engine = db.engine
            if engine.dialect.name == 'sqlite':
                event.listen(engine, 'connect', _enable_sqlite_foreign_keys)
            db.create_all()
            db.session.execute(text('SELECT 1'))
            db.session.remove()
    except SQLAlchemyError as e:
        logger.warning(f"Database unreachable, using in-memory storage for this process: {e}")
        return StorageMode.EPHEMERAL
    # DBAPI driver missing or malformed URI surface as these
    except (ImportError, ValueError) as e:
        logger.warning(f"Database not configured correctly, using in-memory storage: {e}")
        return StorageMode.EPHEMERAL

    logger.info("Database reachable, using durable storage")
    return StorageMode.DURABLE


class StorageSelector:
    """
    Holds the resolved mode and the backends that serve it.

    `primary` is the backend every read and write goes to first. `fallback`
    is always the in-memory backend: in ephemeral mode it is the primary
    itself, in durable mode it catches message writes the database rejects.
    """

    def __init__(self, mode: StorageMode, durable: Optional[StorageBackend] = None,
                 ephemeral: Optional[StorageBackend] = None):
        self._mode = StorageMode(mode)
        self.fallback = ephemeral or EphemeralBackend()
        if self._mode is StorageMode.DURABLE:
            self.primary = durable or DurableBackend()
        else:
            self.primary = self.fallback

    def current_mode(self) -> StorageMode:
        return self._mode

    @property
    def has_separate_fallback(self) -> bool:
        return self.primary is not self.fallback

    # Capability passthrough to the primary backend

    def read(self, collection, predicate, **options):
        return self.primary.read(collection, predicate, **options)

    def write(self, collection, record):
        return self.primary.write(collection, record)

    def delete(self, collection, predicate):
        return self.primary.delete(collection, predicate)
