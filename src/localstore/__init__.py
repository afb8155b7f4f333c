from .base import GUEST, KEY_PREFIX, SnapshotStore, storage_key
from .memory import InMemorySnapshotStore
from .sqlite import SqliteSnapshotStore

__all__ = [
    "SnapshotStore",
    "InMemorySnapshotStore",
    "SqliteSnapshotStore",
    "storage_key",
    "KEY_PREFIX",
    "GUEST",
]
