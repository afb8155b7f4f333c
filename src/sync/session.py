"""Per-user session: the one entry point every view calls."""

from datetime import date
from typing import Any, Callable, Optional

import structlog

from gateway.base import GatewayError, Identity, RemoteGateway
from localstore.base import SnapshotStore, storage_key
from shared_types import EntityKind, Sender, SyncState, TaskPriority, TaskStatus, Theme
from snapshot import stats
from snapshot.ids import new_temp_id
from snapshot.models import (
    ChatMessage,
    Habit,
    JournalEntry,
    RecordValidationError,
    Snapshot,
    Task,
    require_text,
)
from snapshot.pagination import Page, paginate
from snapshot.reset import day_marker

from .context import Listener, SyncContext
from .load import LoadReconciler, LoadResult
from .mutations import MutationReconciler
from .notices import NoticeBoard

logger = structlog.get_logger().bind(source="session")

FALLBACK_REPLY = "I'm having trouble thinking right now. Try again soon 💭"

_TASK_FIELDS = frozenset({"title", "description", "priority", "status", "due_date"})


class LifelogSession:
    """Optimistic, offline-first access to one user's snapshot.

    Without an identity the session runs in guest mode: every mutation is
    final as a local change and nothing touches the network.

    Args:
        store: Durable local store
        gateway: Remote store client, None for a local-only session
        identity: Signed-in user, None for guest
        discard_stale: Drop out-of-order confirmations (see MutationReconciler)
        today: Day marker provider, injectable for tests
        page_size: Default journal page size
    """

    def __init__(
        self,
        store: SnapshotStore,
        gateway: Optional[RemoteGateway] = None,
        identity: Optional[Identity] = None,
        notices: Optional[NoticeBoard] = None,
        discard_stale: bool = True,
        today: Callable[[], str] = day_marker,
        page_size: int = 10,
    ):
        self.store = store
        self.gateway = gateway
        self.identity = identity
        self.notices = notices or NoticeBoard()
        self.context = SyncContext(
            store,
            storage_key(identity.user_id if identity else None),
            token=identity.token if identity and gateway else None,
        )
        self.loader = LoadReconciler(store, gateway, self.notices, today)
        self.mutations = MutationReconciler(self.context, self.notices, discard_stale)
        self.page_size = page_size
        self.last_load: Optional[LoadResult] = None

    @property
    def snapshot(self) -> Snapshot:
        return self.context.snapshot

    @property
    def auth_required(self) -> bool:
        return self.context.auth_required

    def subscribe(self, listener: Listener) -> None:
        self.context.subscribe(listener)

    async def load(self) -> Snapshot:
        """Show local data at once, then reconcile with the remote store."""

        def show_local(local: Snapshot) -> None:
            self.context.snapshot = local
            self.context.publish("load.local")

        result = await self.loader.reconcile(self.context.user_key, self.context.token, show_local)
        self.last_load = result
        if result.auth_failed:
            self.context.auth_required = True
        self.context.snapshot = result.snapshot
        self.context.publish(f"load.{result.source.value}")
        return result.snapshot

    def forget_local(self) -> None:
        """Drop this user's persisted snapshot (sign-out on a shared device)."""
        self.store.clear(self.context.user_key)
        self.context.snapshot = Snapshot()

    # --- mood & theme ---

    async def set_mood(self, mood: str) -> str:
        mood = require_text(mood, "mood")
        await self.mutations.set_scalar(
            "mood", mood, lambda token: self.gateway.update_mood(token, mood)
        )
        return self.snapshot.mood

    async def set_theme(self, theme: Theme | str) -> Theme:
        theme = Theme(theme)
        await self.mutations.set_scalar(
            "theme", theme, lambda token: self.gateway.update_theme(token, theme)
        )
        return self.snapshot.theme

    # --- habits ---

    async def add_habit(self, name: str, category: Optional[str] = None) -> Habit:
        name = require_text(name, "habit name")
        habit = Habit(id=new_temp_id(), sync=SyncState.PENDING, name=name, category=category)

        async def submit(token: str, record: Habit) -> Optional[Habit]:
            saved = await self.gateway.add_habit(token, record.name)
            if saved.category is None and record.category is not None:
                saved = saved.model_copy(update={"category": record.category})
            return saved

        return await self.mutations.create(EntityKind.HABIT, habit, submit)

    async def toggle_habit(self, habit_id: str) -> Optional[Habit]:
        return await self.mutations.update(
            EntityKind.HABIT,
            str(habit_id),
            lambda h: h.toggled(),
            lambda token, h: self.gateway.toggle_habit(token, h.id),
            revert_fields=("completed", "streak"),
        )

    async def delete_habit(self, habit_id: str) -> bool:
        return await self.mutations.delete(
            EntityKind.HABIT, str(habit_id), lambda token, rid: self.gateway.delete_habit(token, rid)
        )

    # --- journal ---

    async def add_journal(self, text: str) -> JournalEntry:
        text = require_text(text, "journal text")
        entry = JournalEntry(id=new_temp_id(), sync=SyncState.PENDING, text=text)
        return await self.mutations.create(
            EntityKind.JOURNAL,
            entry,
            lambda token, record: self.gateway.add_journal(token, record.text),
        )

    async def delete_journal(self, journal_id: str) -> bool:
        return await self.mutations.delete(
            EntityKind.JOURNAL,
            str(journal_id),
            lambda token, rid: self.gateway.delete_journal(token, rid),
        )

    async def journal_page(self, page: int = 1, limit: Optional[int] = None) -> Page[JournalEntry]:
        """One page of journal entries, newest first.

        Online it asks the server; offline, or when that fails, it windows the
        local snapshot with the same pagination function.
        """
        if limit is None:
            limit = self.page_size
        if page < 1 or limit < 1:
            raise ValueError(f"page and limit must be >= 1, got {page}, {limit}")
        token = self.mutations.active_token()
        if token is not None:
            try:
                return await self.gateway.journal_page(token, page, limit)
            except GatewayError as e:
                logger.info("journal_page_remote_failed", page=page, error=str(e))
        return paginate(self.snapshot.journals, page, limit)

    # --- tasks ---

    async def add_task(
        self,
        title: str,
        description: str = "",
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        due_date: Optional[date] = None,
    ) -> Task:
        title = require_text(title, "task title")
        task = Task(
            id=new_temp_id(),
            sync=SyncState.PENDING,
            title=title,
            description=(description or "").strip(),
            priority=TaskPriority(priority),
            due_date=due_date,
        )

        async def submit(token: str, record: Task) -> Optional[Task]:
            body = record.model_dump(
                mode="json", by_alias=True, include={"title", "description", "priority", "due_date"}
            )
            return await self.gateway.add_task(token, body)

        return await self.mutations.create(EntityKind.TASK, task, submit)

    async def update_task(self, task_id: str, **changes: Any) -> Optional[Task]:
        """Edit title/description/priority/status/due_date."""
        unknown = set(changes) - _TASK_FIELDS
        if unknown:
            raise RecordValidationError(f"unknown task fields: {sorted(unknown)}")
        if "title" in changes:
            changes["title"] = require_text(changes["title"], "task title")
        if "status" in changes:
            changes["status"] = TaskStatus(changes["status"])
        if "priority" in changes:
            changes["priority"] = TaskPriority(changes["priority"])

        def change(task: Task) -> Task:
            # Re-validate so completedAt follows the status
            return Task.model_validate({**task.model_dump(), **changes})

        async def submit(token: str, record: Task) -> Task:
            body = record.model_dump(mode="json", by_alias=True, include=set(changes))
            return await self.gateway.update_task(token, record.id, body)

        return await self.mutations.update(EntityKind.TASK, str(task_id), change, submit)

    async def toggle_task(self, task_id: str) -> Optional[Task]:
        return await self.mutations.update(
            EntityKind.TASK,
            str(task_id),
            lambda t: t.toggled(),
            lambda token, t: self.gateway.toggle_task(token, t.id),
            revert_fields=("status", "completed_at"),
        )

    async def delete_task(self, task_id: str) -> bool:
        return await self.mutations.delete(
            EntityKind.TASK, str(task_id), lambda token, rid: self.gateway.delete_task(token, rid)
        )

    # --- chat ---

    async def send_message(self, text: str) -> ChatMessage:
        """Post a user message and append the reply (or the canned fallback)."""
        text = require_text(text, "message")
        message = ChatMessage(id=new_temp_id(), sync=SyncState.PENDING, sender=Sender.USER, text=text)
        replies = []

        async def submit(token: str, record: ChatMessage) -> Optional[ChatMessage]:
            reply = await self.gateway.send_chat(token, record.text)
            replies.append(reply)
            if reply.user_message_id is None:
                return None
            return record.model_copy(update={"id": reply.user_message_id})

        await self.mutations.create(EntityKind.MESSAGE, message, submit)

        if replies:
            reply = replies[0]
            answer = ChatMessage(
                id=reply.reply_id or new_temp_id(),
                sync=SyncState.CONFIRMED if reply.reply_id else SyncState.PENDING,
                sender=Sender.AI,
                text=reply.reply,
            )
        else:
            answer = ChatMessage(
                id=new_temp_id(), sync=SyncState.PENDING, sender=Sender.AI, text=FALLBACK_REPLY
            )
        self.snapshot.messages.append(answer)
        self.context.commit("message.reply")
        return answer

    async def refresh_chat(self) -> list[ChatMessage]:
        """Pull the conversation from the server.

        Follows the load merge rule: an empty remote history never wipes a
        non-empty local one, and any failure keeps the local messages.
        """
        token = self.mutations.active_token()
        if token is None:
            return self.snapshot.messages
        try:
            messages = await self.gateway.fetch_chat(token)
        except GatewayError as e:
            logger.info("chat_refresh_failed", error=str(e))
            return self.snapshot.messages
        if messages or not self.snapshot.messages:
            self.snapshot.messages = messages
            self.context.commit("message.refreshed")
        return self.snapshot.messages

    async def clear_chat(self) -> int:
        return await self.mutations.clear(
            EntityKind.MESSAGE, lambda token: self.gateway.clear_chat(token)
        )

    # --- read-only views ---

    def search(self, query: str) -> list[dict]:
        return stats.search(self.snapshot, query)

    def summary(self, today: Optional[date] = None) -> dict:
        return stats.summarize(self.snapshot, today)
