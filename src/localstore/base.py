"""Snapshot store contract and key namespacing."""

from abc import ABC, abstractmethod
from typing import Optional

from snapshot.models import Snapshot

KEY_PREFIX = "lifelog:data:v2"
GUEST = "guest"


def storage_key(user_id: Optional[str] = None) -> str:
    """Namespaced key for a user's snapshot; unauthenticated sessions share `guest`."""
    return f"{KEY_PREFIX}:{user_id or GUEST}"


class SnapshotStore(ABC):
    """Durable per-user snapshot persistence.

    Implementations never raise from get/set/clear. A broken backend degrades
    to process-lifetime memory instead.
    """

    @abstractmethod
    def get(self, user_key: str) -> Optional[Snapshot]:
        ...

    @abstractmethod
    def set(self, user_key: str, snapshot: Snapshot) -> None:
        ...

    @abstractmethod
    def clear(self, user_key: str) -> None:
        ...
