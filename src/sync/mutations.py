"""Optimistic apply / confirm / revert, implemented once for every entity kind."""

import itertools
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from gateway.base import AuthorizationError, ConflictError, GatewayError
from observability import metrics
from shared_types import EntityKind, SyncState
from snapshot.models import Record, Snapshot

from .context import SyncContext
from .notices import NoticeBoard, NoticeKind

logger = structlog.get_logger().bind(source="mutation_reconciler")

R = TypeVar("R", bound=Record)

# Submit callables receive the bearer token and the optimistic record.
CreateSubmit = Callable[[str, R], Awaitable[Optional[R]]]
UpdateSubmit = Callable[[str, R], Awaitable[R]]
DeleteSubmit = Callable[[str, str], Awaitable[None]]
ScalarSubmit = Callable[[str], Awaitable[Snapshot]]

FIELDS = {
    EntityKind.HABIT: "habits",
    EntityKind.JOURNAL: "journals",
    EntityKind.TASK: "tasks",
    EntityKind.MESSAGE: "messages",
}
# Chat is a transcript; everything else lists newest first
APPEND_KINDS = {EntityKind.MESSAGE}


class MutationReconciler:
    """Runs the three-phase protocol against a SyncContext.

    Apply happens synchronously before the first await, so by the time a
    caller yields to the event loop the change is already persisted and
    visible. Submit only runs with a usable credential.

    With `discard_stale` on, each request is tagged with a sequence number
    and any outcome that is not from the latest request for its record is
    dropped. Only records with a request in flight are tracked.
    """

    def __init__(
        self,
        context: SyncContext,
        notices: Optional[NoticeBoard] = None,
        discard_stale: bool = True,
    ):
        self.context = context
        self.notices = notices or NoticeBoard()
        self.discard_stale = discard_stale
        self._seq = itertools.count(1)
        self._in_flight: dict[str, int] = {}

    # --- bookkeeping ---

    def _items(self, kind: EntityKind) -> list:
        return getattr(self.context.snapshot, FIELDS[kind])

    def _index(self, kind: EntityKind, record_id: str) -> Optional[int]:
        for i, item in enumerate(self._items(kind)):
            if item.id == record_id:
                return i
        return None

    def find(self, kind: EntityKind, record_id: str) -> Optional[Record]:
        idx = self._index(kind, record_id)
        return None if idx is None else self._items(kind)[idx]

    def _issue(self, key: str) -> int:
        seq = next(self._seq)
        self._in_flight[key] = seq
        return seq

    def _is_stale(self, key: str, seq: int) -> bool:
        """Check an outcome against the latest request for `key`.

        The latest request settles its key; anything older is stale.
        """
        latest = self._in_flight.get(key)
        if latest == seq:
            del self._in_flight[key]
            return False
        if not self.discard_stale:
            return False
        metrics.counter("sync.mutation.stale")
        logger.info("stale_outcome_discarded", key=key, seq=seq, latest=latest)
        return True

    def active_token(self) -> Optional[str]:
        return self.context.token if self.context.online else None

    def _local_only(self, kind: str, op: str) -> None:
        metrics.counter("sync.mutation.local_only")
        logger.debug("mutation_local_only", kind=kind, op=op)

    def _failed(self, kind: str, op: str, record_id: str, error: GatewayError) -> None:
        metrics.counter("sync.mutation.failed")
        logger.warning("mutation_sync_failed", kind=kind, op=op, record_id=record_id, error=str(error))
        if isinstance(error, AuthorizationError):
            self.context.auth_required = True
            self.notices.post(NoticeKind.AUTH_REQUIRED, "Session expired. Sign in again to sync.")
        else:
            self.notices.post(NoticeKind.SYNC_FAILED, f"Couldn't sync {kind} {op}. Saved locally.")

    def _confirm(self, kind: EntityKind, record_id: str, canonical: R) -> Optional[R]:
        """Swap the record for the server's version in the same list slot."""
        idx = self._index(kind, record_id)
        if idx is None:
            logger.info("confirmation_for_missing_record", kind=kind.value, record_id=record_id)
            return None
        confirmed = canonical.model_copy(update={"sync": SyncState.CONFIRMED})
        self._items(kind)[idx] = confirmed
        metrics.counter("sync.mutation.confirmed")
        self.context.commit(f"{kind.value}.confirmed")
        return confirmed

    # --- protocol ---

    async def create(self, kind: EntityKind, record: R, submit: CreateSubmit) -> R:
        """Insert optimistically, then replace with the canonical record.

        A submit that returns None leaves the record pending.
        """
        items = self._items(kind)
        if kind in APPEND_KINDS:
            items.append(record)
        else:
            items.insert(0, record)
        self.context.commit(f"{kind.value}.created")

        token = self.active_token()
        if token is None:
            self._local_only(kind.value, "create")
            return record

        seq = self._issue(record.id)
        try:
            canonical = await submit(token, record)
        except GatewayError as e:
            if not self._is_stale(record.id, seq):
                self._failed(kind.value, "create", record.id, e)
            return self.find(kind, record.id) or record

        if self._is_stale(record.id, seq) or canonical is None:
            return self.find(kind, record.id) or record
        return self._confirm(kind, record.id, canonical) or record

    async def update(
        self,
        kind: EntityKind,
        record_id: str,
        change: Callable[[R], R],
        submit: UpdateSubmit,
        revert_fields: tuple[str, ...] = (),
    ) -> Optional[R]:
        """Apply `change` locally, then confirm with the server's version.

        `revert_fields` marks a toggle: on a failed submit those fields are
        restored to their pre-change values. Conflicts never revert.
        """
        idx = self._index(kind, record_id)
        if idx is None:
            logger.info("update_for_missing_record", kind=kind.value, record_id=record_id)
            return None
        items = self._items(kind)
        before = items[idx]
        after = change(before)
        items[idx] = after
        self.context.commit(f"{kind.value}.updated")

        token = self.active_token()
        if token is None or after.is_pending:
            # Nothing on the server to update yet
            self._local_only(kind.value, "update")
            return after

        seq = self._issue(record_id)
        try:
            canonical = await submit(token, after)
        except GatewayError as e:
            if self._is_stale(record_id, seq):
                return self.find(kind, record_id)
            self._failed(kind.value, "update", record_id, e)
            if revert_fields and not isinstance(e, ConflictError):
                self._revert(kind, record_id, before, revert_fields)
            return self.find(kind, record_id)

        if self._is_stale(record_id, seq):
            return self.find(kind, record_id)
        return self._confirm(kind, record_id, canonical)

    def _revert(self, kind: EntityKind, record_id: str, before: R, fields: tuple[str, ...]) -> None:
        idx = self._index(kind, record_id)
        if idx is None:
            return
        items = self._items(kind)
        items[idx] = items[idx].model_copy(update={f: getattr(before, f) for f in fields})
        self.context.commit(f"{kind.value}.reverted")
        self.notices.post(NoticeKind.REVERTED, f"Sync failed - reverted {kind.value} change.")

    async def delete(self, kind: EntityKind, record_id: str, submit: DeleteSubmit) -> bool:
        """Remove immediately; tell the server only about confirmed records.

        A failed remote delete is reported, never retried or undone.
        """
        idx = self._index(kind, record_id)
        if idx is None:
            return False
        removed = self._items(kind).pop(idx)
        # Any confirmation still in flight for this record is now stale
        self._in_flight.pop(record_id, None)
        self.context.commit(f"{kind.value}.deleted")

        token = self.active_token()
        if removed.is_pending or token is None:
            self._local_only(kind.value, "delete")
            return True

        try:
            await submit(token, record_id)
        except GatewayError as e:
            self._failed(kind.value, "delete", record_id, e)
        return True

    async def clear(self, kind: EntityKind, submit: Callable[[str], Awaitable[None]]) -> int:
        """Empty a whole list; same failure policy as delete."""
        items = self._items(kind)
        count = len(items)
        for item in items:
            self._in_flight.pop(item.id, None)
        items.clear()
        self.context.commit(f"{kind.value}.cleared")

        token = self.active_token()
        if token is None:
            self._local_only(kind.value, "clear")
            return count
        try:
            await submit(token)
        except GatewayError as e:
            self._failed(kind.value, "clear", FIELDS[kind], e)
        return count

    async def set_scalar(self, name: str, value, submit: ScalarSubmit) -> None:
        """Mood/theme: set locally, then adopt whatever the server echoes back."""
        setattr(self.context.snapshot, name, value)
        self.context.commit(f"{name}.updated")

        token = self.active_token()
        if token is None:
            self._local_only(name, "update")
            return

        key = f"snapshot.{name}"
        seq = self._issue(key)
        try:
            remote = await submit(token)
        except GatewayError as e:
            if not self._is_stale(key, seq):
                self._failed(name, "update", key, e)
            return

        if self._is_stale(key, seq):
            return
        metrics.counter("sync.mutation.confirmed")
        if name in remote.model_fields_set and getattr(remote, name) != value:
            setattr(self.context.snapshot, name, getattr(remote, name))
            self.context.commit(f"{name}.confirmed")
