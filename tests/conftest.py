"""Shared test fixtures for lifelog-sync."""

import asyncio
import sys
from datetime import date
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gateway.base import (  # noqa: E402
    AuthorizationError,
    ChatReply,
    Identity,
    NotFoundError,
    RemoteGateway,
)
from localstore.memory import InMemorySnapshotStore  # noqa: E402
from observability import metrics  # noqa: E402
from shared_types import Sender  # noqa: E402
from snapshot.models import ChatMessage, Habit, JournalEntry, Snapshot, Task  # noqa: E402
from snapshot.pagination import paginate  # noqa: E402
from snapshot.reset import day_marker  # noqa: E402
from sync.session import LifelogSession  # noqa: E402

TODAY = date(2026, 10, 17)
TODAY_MARKER = day_marker(TODAY)


class FakeGateway(RemoteGateway):
    """In-memory remote store.

    `failures[name]` makes every call to that method raise the given error.
    `holds[name]` is a list of events; each call pops the first one and waits
    on it, so a test can control the order responses come back in.
    """

    def __init__(self, snapshot: Snapshot | None = None):
        self.remote = snapshot or Snapshot(last_reset=TODAY_MARKER)
        self.calls: list[tuple] = []
        self.failures: dict[str, Exception] = {}
        self.holds: dict[str, list[asyncio.Event]] = {}
        self.closed = False
        self._next = 0

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def hold(self, name: str) -> asyncio.Event:
        event = asyncio.Event()
        self.holds.setdefault(name, []).append(event)
        return event

    def _new_id(self) -> str:
        self._next += 1
        return f"srv-{self._next}"

    async def _call(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        pending = self.holds.get(name)
        if pending:
            await pending.pop(0).wait()
        if name in self.failures:
            raise self.failures[name]

    def _find(self, items: list, record_id: str):
        for item in items:
            if item.id == record_id:
                return item
        raise NotFoundError(f"{record_id} not found", 404)

    def _replace(self, items: list, record):
        for i, item in enumerate(items):
            if item.id == record.id:
                items[i] = record
        return record.model_copy()

    def _echo(self) -> Snapshot:
        return Snapshot.from_dict(self.remote.to_dict())

    async def fetch_snapshot(self, token):
        await self._call("fetch_snapshot", token)
        return self._echo()

    async def update_mood(self, token, mood):
        await self._call("update_mood", mood)
        self.remote.mood = mood
        return self._echo()

    async def update_theme(self, token, theme):
        await self._call("update_theme", theme)
        self.remote.theme = theme
        return self._echo()

    async def add_habit(self, token, name):
        await self._call("add_habit", name)
        habit = Habit(id=self._new_id(), name=name)
        self.remote.habits.insert(0, habit)
        return habit.model_copy()

    async def toggle_habit(self, token, habit_id):
        await self._call("toggle_habit", habit_id)
        habit = self._find(self.remote.habits, habit_id)
        return self._replace(self.remote.habits, habit.toggled())

    async def delete_habit(self, token, habit_id):
        await self._call("delete_habit", habit_id)
        self.remote.habits.remove(self._find(self.remote.habits, habit_id))

    async def add_journal(self, token, text):
        await self._call("add_journal", text)
        entry = JournalEntry(id=self._new_id(), text=text)
        self.remote.journals.insert(0, entry)
        return entry.model_copy()

    async def delete_journal(self, token, journal_id):
        await self._call("delete_journal", journal_id)
        self.remote.journals.remove(self._find(self.remote.journals, journal_id))

    async def journal_page(self, token, page, limit):
        await self._call("journal_page", page, limit)
        return paginate(self.remote.journals, page, limit)

    async def add_task(self, token, fields):
        await self._call("add_task", fields)
        task = Task.model_validate({**fields, "id": self._new_id()})
        self.remote.tasks.insert(0, task)
        return task.model_copy()

    async def update_task(self, token, task_id, fields):
        await self._call("update_task", task_id, fields)
        task = self._find(self.remote.tasks, task_id)
        return self._replace(self.remote.tasks, Task.model_validate({**task.to_dict(), **fields}))

    async def toggle_task(self, token, task_id):
        await self._call("toggle_task", task_id)
        task = self._find(self.remote.tasks, task_id)
        return self._replace(self.remote.tasks, task.toggled())

    async def delete_task(self, token, task_id):
        await self._call("delete_task", task_id)
        self.remote.tasks.remove(self._find(self.remote.tasks, task_id))

    async def fetch_chat(self, token):
        await self._call("fetch_chat")
        return [m.model_copy() for m in self.remote.messages]

    async def send_chat(self, token, text):
        await self._call("send_chat", text)
        user = ChatMessage(id=self._new_id(), sender=Sender.USER, text=text)
        reply = ChatMessage(id=self._new_id(), sender=Sender.AI, text=f"You said: {text}")
        self.remote.messages.extend([user, reply])
        return ChatReply(reply=reply.text, user_message_id=user.id, reply_id=reply.id)

    async def clear_chat(self, token):
        await self._call("clear_chat")
        self.remote.messages.clear()

    async def sign_in(self, email, password):
        await self._call("sign_in", email)
        if password != "secret":
            raise AuthorizationError("invalid credentials", 401)
        return Identity(user_id="u1", token="tok-1", name="Sam", email=email)

    async def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def store():
    return InMemorySnapshotStore()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def identity():
    return Identity(user_id="u1", token="tok-1", name="Sam", email="sam@example.com")


@pytest.fixture
def make_session(store, gateway, identity):
    """Build a session; signed in against the fake gateway unless told otherwise."""

    def _make(signed_in: bool = True, **kwargs) -> LifelogSession:
        return LifelogSession(
            store,
            gateway=gateway,
            identity=identity if signed_in else None,
            today=lambda: TODAY_MARKER,
            **kwargs,
        )

    return _make
