"""In-process snapshot store."""

import json
from typing import Optional

from snapshot.models import Snapshot

from .base import SnapshotStore


class InMemorySnapshotStore(SnapshotStore):
    """Holds serialized snapshots in a dict.

    Values are stored as JSON text, so callers never share mutable state
    with the store and a get() always returns a fresh copy.
    """

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, user_key: str) -> Optional[Snapshot]:
        raw = self._data.get(user_key)
        if raw is None:
            return None
        return Snapshot.from_dict(json.loads(raw))

    def set(self, user_key: str, snapshot: Snapshot) -> None:
        self._data[user_key] = json.dumps(snapshot.to_dict())

    def clear(self, user_key: str) -> None:
        self._data.pop(user_key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)
