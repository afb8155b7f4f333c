"""Load reconciliation: local snapshot first, then a non-regressing remote merge."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Optional

import structlog

from gateway.base import AuthorizationError, GatewayError, RemoteGateway
from localstore.base import SnapshotStore
from observability import metrics
from snapshot.models import Snapshot
from snapshot.reset import day_marker, reset_if_new_day

from .notices import NoticeBoard, NoticeKind

logger = structlog.get_logger().bind(source="load_reconciler")

LIST_FIELDS = ("habits", "journals", "tasks", "messages", "insights")
SCALAR_FIELDS = ("mood", "theme", "last_reset")


class LoadSource(StrEnum):
    REMOTE = "remote"
    LOCAL = "local"
    SEEDED = "seeded"


@dataclass
class LoadResult:
    snapshot: Snapshot
    source: LoadSource
    error: Optional[GatewayError] = None

    @property
    def auth_failed(self) -> bool:
        return isinstance(self.error, AuthorizationError)


def merge_snapshots(local: Snapshot, remote: Snapshot) -> Snapshot:
    """Per-field merge of a fresh remote snapshot over the local one.

    Lists take the remote value unless it is empty while the local one is
    not. Scalars take the remote value whenever the remote payload carried
    the field.
    """
    merged = {}
    for name in LIST_FIELDS:
        remote_items = getattr(remote, name)
        local_items = getattr(local, name)
        merged[name] = remote_items if remote_items or not local_items else local_items
    for name in SCALAR_FIELDS:
        merged[name] = getattr(remote if name in remote.model_fields_set else local, name)
    return Snapshot(**merged).model_copy(deep=True)


class LoadReconciler:
    """Builds the effective snapshot for a view on entry.

    Args:
        store: Durable local store
        gateway: Remote store, or None for a purely local client
        notices: Where auth and connectivity notices go
        today: Day marker provider for the daily reset
    """

    def __init__(
        self,
        store: SnapshotStore,
        gateway: Optional[RemoteGateway] = None,
        notices: Optional[NoticeBoard] = None,
        today: Callable[[], str] = day_marker,
    ):
        self.store = store
        self.gateway = gateway
        self.notices = notices or NoticeBoard()
        self.today = today

    async def load(
        self,
        user_key: str,
        token: Optional[str] = None,
        on_local: Optional[Callable[[Snapshot], None]] = None,
    ) -> Snapshot:
        result = await self.reconcile(user_key, token, on_local)
        return result.snapshot

    async def reconcile(
        self,
        user_key: str,
        token: Optional[str] = None,
        on_local: Optional[Callable[[Snapshot], None]] = None,
    ) -> LoadResult:
        """Run the full load and report where the data came from.

        `on_local` receives the local snapshot before any network call so a
        view never renders blank while the fetch is in flight.
        """
        local = self.store.get(user_key)
        if local is not None and on_local is not None:
            on_local(local)

        remote, error = None, None
        if token and self.gateway is not None:
            remote, error = await self._fetch(token, local is not None)

        if remote is not None:
            merged = merge_snapshots(local, remote) if local is not None else remote
            result = LoadResult(merged, LoadSource.REMOTE)
        elif local is not None:
            result = LoadResult(local, LoadSource.LOCAL, error)
        elif token:
            # Signed in but unreachable: start empty rather than invent data
            result = LoadResult(Snapshot(last_reset=self.today()), LoadSource.LOCAL, error)
        else:
            result = LoadResult(Snapshot.seeded(self.today()), LoadSource.SEEDED)

        result.snapshot = reset_if_new_day(result.snapshot, self.today())
        self.store.set(user_key, result.snapshot)
        logger.debug(
            "snapshot_loaded",
            user_key=user_key,
            source=result.source.value,
            habits=len(result.snapshot.habits),
            journals=len(result.snapshot.journals),
        )
        return result

    async def _fetch(
        self, token: str, have_local: bool
    ) -> tuple[Optional[Snapshot], Optional[GatewayError]]:
        try:
            remote = await self.gateway.fetch_snapshot(token)
        except AuthorizationError as e:
            metrics.counter("sync.load.remote_failed")
            logger.warning("snapshot_fetch_unauthorized", error=str(e))
            self.notices.post(NoticeKind.AUTH_REQUIRED, "Session expired. Sign in again to sync.")
            return None, e
        except GatewayError as e:
            metrics.counter("sync.load.remote_failed")
            logger.warning("snapshot_fetch_failed", error=str(e), using_local=have_local)
            self.notices.post(NoticeKind.OFFLINE, "Offline. Showing saved data.")
            return None, e

        metrics.counter("sync.load.remote_ok")
        return remote, None
