"""Tests for LifelogSession: tasks, chat, journal paging, views."""

from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from conftest import TODAY, TODAY_MARKER, FakeGateway
from gateway.base import ProtocolError, TransientNetworkError
from gateway.http import HttpGateway
from localstore.base import storage_key
from shared_types import Sender, SyncState, TaskPriority, TaskStatus, Theme
from snapshot.models import (
    WELCOME_MESSAGE,
    ChatMessage,
    JournalEntry,
    RecordValidationError,
    Snapshot,
    Task,
)
from sync.notices import NoticeKind
from sync.session import FALLBACK_REPLY, LifelogSession


def _journals(n: int) -> list[JournalEntry]:
    base = datetime(2026, 10, 1, tzinfo=timezone.utc)
    return [JournalEntry(id=f"j{i}", text=f"entry {i}", created_at=base + timedelta(hours=i)) for i in range(n)]


@pytest.fixture
def gateway():
    return FakeGateway(
        Snapshot(
            journals=_journals(12),
            tasks=[Task(id="t1", title="Write report", due_date=date(2026, 10, 20))],
            messages=[ChatMessage(id="m0", sender=Sender.AI, text="Hi!")],
            last_reset=TODAY_MARKER,
        )
    )


class TestLoadFlow:
    @pytest.mark.asyncio
    async def test_listeners_see_local_then_remote(self, make_session, store):
        store.set(storage_key("u1"), Snapshot(last_reset=TODAY_MARKER))
        session = make_session()
        reasons = []
        session.subscribe(lambda snap, reason: reasons.append(reason))

        await session.load()

        assert reasons == ["load.local", "load.remote"]
        assert session.last_load.source == "remote"

    @pytest.mark.asyncio
    async def test_listener_error_does_not_break_mutation(self, make_session):
        session = make_session()
        await session.load()

        def broken(snap, reason):
            raise RuntimeError("render failed")

        session.subscribe(broken)
        entry = await session.add_journal("still saved")
        assert entry.sync == SyncState.CONFIRMED

    @pytest.mark.asyncio
    async def test_forget_local(self, make_session, store):
        session = make_session()
        await session.load()
        assert store.get(storage_key("u1")) is not None

        session.forget_local()

        assert store.get(storage_key("u1")) is None
        assert session.snapshot.journals == []


class TestTasks:
    @pytest.mark.asyncio
    async def test_add_task_sends_wire_fields(self, make_session, gateway):
        session = make_session()
        await session.load()

        task = await session.add_task(
            "  Book dentist ", description="before Friday", priority="high", due_date=date(2026, 10, 23)
        )

        assert task.id == "srv-1"
        assert task.title == "Book dentist"
        assert task.priority == TaskPriority.HIGH
        assert session.snapshot.tasks[0].id == "srv-1"
        _, body = gateway.calls[-1]
        assert body == {
            "title": "Book dentist",
            "description": "before Friday",
            "priority": "high",
            "dueDate": "2026-10-23",
        }

    @pytest.mark.asyncio
    async def test_update_to_completed_sets_completed_at(self, make_session, gateway):
        session = make_session()
        await session.load()

        task = await session.update_task("t1", status="completed")

        assert task.status == TaskStatus.COMPLETED
        assert task.completed_at is not None
        assert gateway.calls[-1] == ("update_task", "t1", {"status": "completed"})

    @pytest.mark.asyncio
    async def test_reopen_clears_completed_at(self, make_session):
        session = make_session()
        await session.load()
        await session.toggle_task("t1")

        task = await session.update_task("t1", status=TaskStatus.IN_PROGRESS)

        assert task.completed_at is None

    @pytest.mark.asyncio
    async def test_clear_due_date(self, make_session, gateway):
        session = make_session()
        await session.load()

        task = await session.update_task("t1", due_date=None)

        assert task.due_date is None
        assert gateway.calls[-1][2] == {"dueDate": None}

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, make_session, gateway):
        session = make_session()
        await session.load()
        with pytest.raises(RecordValidationError, match="unknown task fields"):
            await session.update_task("t1", owner="someone")
        with pytest.raises(RecordValidationError):
            await session.update_task("t1", title="  ")
        assert gateway.count("update_task") == 0

    @pytest.mark.asyncio
    async def test_toggle_failure_reverts_status(self, make_session, gateway):
        session = make_session()
        await session.load()
        gateway.failures["toggle_task"] = TransientNetworkError("down")

        task = await session.toggle_task("t1")

        assert task.status == TaskStatus.PENDING
        assert task.completed_at is None

    @pytest.mark.asyncio
    async def test_delete_task(self, make_session, gateway):
        session = make_session()
        await session.load()
        assert await session.delete_task("t1")
        assert session.snapshot.tasks == []
        assert gateway.remote.tasks == []


class TestChat:
    @pytest.mark.asyncio
    async def test_reply_appended_with_server_ids(self, make_session):
        session = make_session()
        await session.load()

        reply = await session.send_message("how was my week?")

        messages = session.snapshot.messages
        assert [m.id for m in messages] == ["m0", "srv-1", "srv-2"]
        assert messages[1].sender == Sender.USER and messages[1].sync == SyncState.CONFIRMED
        assert reply.sender == Sender.AI
        assert reply.text == "You said: how was my week?"

    @pytest.mark.asyncio
    async def test_guest_gets_fallback_reply(self, make_session, gateway):
        session = make_session(signed_in=False)
        await session.load()

        reply = await session.send_message("hello")

        assert reply.text == FALLBACK_REPLY
        assert [m.text for m in session.snapshot.messages] == [WELCOME_MESSAGE, "hello", FALLBACK_REPLY]
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_failure_gets_fallback_reply(self, make_session, gateway):
        session = make_session()
        await session.load()
        gateway.failures["send_chat"] = ProtocolError("no reply")

        reply = await session.send_message("hello")

        assert reply.text == FALLBACK_REPLY
        assert session.snapshot.messages[-2].is_pending
        assert session.snapshot.messages[-2].text == "hello"

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, make_session):
        session = make_session()
        await session.load()
        with pytest.raises(RecordValidationError):
            await session.send_message("")

    @pytest.mark.asyncio
    async def test_clear_chat(self, make_session, gateway):
        session = make_session()
        await session.load()

        assert await session.clear_chat() == 1

        assert session.snapshot.messages == []
        assert gateway.count("clear_chat") == 1

    @pytest.mark.asyncio
    async def test_refresh_chat_adopts_server_history(self, make_session, gateway, store):
        session = make_session()
        await session.load()
        gateway.remote.messages.append(ChatMessage(id="m1", sender=Sender.USER, text="from phone"))

        messages = await session.refresh_chat()

        assert [m.id for m in messages] == ["m0", "m1"]
        assert [m.id for m in store.get(storage_key("u1")).messages] == ["m0", "m1"]

    @pytest.mark.asyncio
    async def test_refresh_chat_keeps_local_on_empty_or_failure(self, make_session, gateway):
        session = make_session()
        await session.load()
        gateway.remote.messages.clear()
        assert [m.id for m in await session.refresh_chat()] == ["m0"]

        gateway.failures["fetch_chat"] = TransientNetworkError("down")
        assert [m.id for m in await session.refresh_chat()] == ["m0"]


class TestJournalPage:
    @pytest.mark.asyncio
    async def test_remote_page(self, make_session, gateway):
        session = make_session()
        await session.load()

        page = await session.journal_page(2, 5)

        assert gateway.count("journal_page") == 1
        assert [e.id for e in page.items] == ["j6", "j5", "j4", "j3", "j2"]
        assert (page.total, page.total_pages, page.current_page) == (12, 3, 2)

    @pytest.mark.asyncio
    async def test_falls_back_to_local_with_same_window(self, make_session, gateway):
        session = make_session()
        await session.load()
        online = await session.journal_page(2, 5)
        gateway.failures["journal_page"] = TransientNetworkError("down")

        offline = await session.journal_page(2, 5)

        assert [e.id for e in offline.items] == [e.id for e in online.items]
        assert offline.total_pages == online.total_pages

    @pytest.mark.asyncio
    async def test_default_page_size(self, make_session):
        session = make_session(signed_in=False, page_size=4)
        await session.load()
        for i in range(6):
            await session.add_journal(f"note {i}")

        page = await session.journal_page()

        assert len(page.items) == 4
        assert page.total_pages == 2

    @pytest.mark.asyncio
    async def test_rejects_bad_window(self, make_session):
        session = make_session()
        await session.load()
        with pytest.raises(ValueError):
            await session.journal_page(0, 5)


class TestViews:
    @pytest.mark.asyncio
    async def test_theme(self, make_session, gateway):
        session = make_session()
        await session.load()
        assert await session.set_theme("dark") == Theme.DARK
        assert gateway.remote.theme == Theme.DARK

    @pytest.mark.asyncio
    async def test_search_and_summary(self, make_session):
        session = make_session()
        await session.load()

        assert [r["id"] for r in session.search("entry 1")] == ["j11", "j10", "j1"]
        summary = session.summary(TODAY)
        assert summary["journals"] == 12
        assert summary["tasks"]["pending"] == 1
        assert summary["tasks_overdue"] == 0


def _http_session(store, identity, routes: dict) -> tuple[LifelogSession, list]:
    """Session over HttpGateway whose server answers from `routes` by (method, path)."""
    calls = []
    snapshot = {
        "habits": [{"_id": "h1", "name": "Read 30 mins", "streak": 2}],
        "journals": [
            {"_id": f"j{i}", "text": f"entry {i}", "createdAt": f"2026-10-0{i + 1}T09:00:00Z"} for i in range(3)
        ],
        "lastReset": TODAY_MARKER,
    }

    def handler(request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path.removeprefix("/api"))
        calls.append(key)
        if key == ("GET", "/snapshot"):
            return httpx.Response(200, json=snapshot)
        return routes.get(key) or httpx.Response(204)

    gateway = HttpGateway("https://api.test/api", transport=httpx.MockTransport(handler))
    session = LifelogSession(store, gateway=gateway, identity=identity, today=lambda: TODAY_MARKER)
    return session, calls


class TestMalformedRemote:
    @pytest.mark.parametrize(
        "body",
        [[{"_id": "a", "text": "hi"}], {"items": [], "total": "lots"}],
    )
    @pytest.mark.asyncio
    async def test_journal_page_falls_back_to_local(self, store, identity, body):
        session, _ = _http_session(store, identity, {("GET", "/journals"): httpx.Response(200, json=body)})
        await session.load()

        page = await session.journal_page(1, 2)

        assert [e.id for e in page.items] == ["j2", "j1"]
        assert (page.total, page.total_pages) == (3, 2)
        await session.gateway.close()

    @pytest.mark.asyncio
    async def test_chat_refresh_keeps_local_on_bad_body(self, store, identity):
        session, _ = _http_session(store, identity, {("GET", "/chat"): httpx.Response(200, json=42)})
        await session.load()
        before = list(session.snapshot.messages)

        assert await session.refresh_chat() == before
        await session.gateway.close()

    @pytest.mark.asyncio
    async def test_create_without_server_id_stays_pending(self, store, identity):
        no_id = httpx.Response(201, json={"name": "Walk", "completed": False, "streak": 0})
        session, calls = _http_session(store, identity, {("POST", "/habit"): no_id})
        await session.load()

        habit = await session.add_habit("Walk")

        assert habit.is_pending
        assert session.snapshot.habits[0].sync == SyncState.PENDING
        assert [n.kind for n in session.notices.drain()] == [NoticeKind.SYNC_FAILED]

        await session.delete_habit(habit.id)
        assert not any(method == "DELETE" for method, _ in calls)
        await session.gateway.close()
