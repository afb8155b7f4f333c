"""The live in-memory snapshot shared by the reconcilers."""

from typing import Callable, Optional

import structlog

from localstore.base import SnapshotStore
from snapshot.models import Snapshot

logger = structlog.get_logger().bind(source="sync_context")

Listener = Callable[[Snapshot, str], None]


class SyncContext:
    """Owns the one mutable snapshot for a signed-in (or guest) user.

    Every change goes through `commit`, which persists to the local store
    and tells listeners what changed. Only the event loop thread touches it.
    """

    def __init__(
        self,
        store: SnapshotStore,
        user_key: str,
        token: Optional[str] = None,
        snapshot: Optional[Snapshot] = None,
    ):
        self.store = store
        self.user_key = user_key
        self.token = token
        self.snapshot = snapshot or Snapshot()
        self.auth_required = False
        self._listeners: list[Listener] = []

    @property
    def online(self) -> bool:
        return bool(self.token) and not self.auth_required

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def publish(self, reason: str) -> None:
        for listener in self._listeners:
            try:
                listener(self.snapshot, reason)
            except Exception as e:
                logger.warning("snapshot_listener_failed", reason=reason, error=str(e))

    def commit(self, reason: str) -> None:
        """Persist the current snapshot, then notify listeners."""
        self.store.set(self.user_key, self.snapshot)
        self.publish(reason)

    def replace(self, snapshot: Snapshot, reason: str) -> None:
        self.snapshot = snapshot
        self.commit(reason)
