"""
Storage package: one read/write/delete capability, two backends.

- base: the StorageBackend interface and predicate matching
- durable: Flask-SQLAlchemy backend
- ephemeral: in-process fallback backend
- selector: startup mode resolution and the StorageSelector handed to stores
"""

from .base import StorageBackend
from .durable import DurableBackend
from .ephemeral import EphemeralBackend
from .selector import StorageMode, StorageSelector, resolve_storage_mode

__all__ = [
    'StorageBackend', 'DurableBackend', 'EphemeralBackend',
    'StorageMode', 'StorageSelector', 'resolve_storage_mode',
]
