"""httpx implementation of the remote store gateway."""

from typing import Any, Callable, Optional, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from observability import metrics
from shared_types import Theme
from snapshot.ids import coalesce_id
from snapshot.models import ChatMessage, Habit, JournalEntry, Record, Snapshot, Task
from snapshot.pagination import Page, page_from_payload

from .base import (
    AuthorizationError,
    ChatReply,
    ConflictError,
    GatewayError,
    Identity,
    NotFoundError,
    ProtocolError,
    RemoteGateway,
    TransientNetworkError,
)

logger = structlog.get_logger().bind(source="gateway")

T = TypeVar("T")
R = TypeVar("R", bound=Record)

DEFAULT_TIMEOUT = 10.0
LOGIN_TIMEOUT = 30.0


class HttpGateway(RemoteGateway):
    """Talks JSON over HTTP to the lifelog API.

    Args:
        base_url: API root, e.g. https://api.example.com/api/lifelog
        timeout: Per-request timeout in seconds
        login_timeout: Timeout for the identity provider sign-in call
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        login_timeout: float = LOGIN_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.login_timeout = login_timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        kwargs: dict[str, Any] = {"headers": headers, "json": json, "params": params}
        if timeout is not None:
            kwargs["timeout"] = timeout

        with metrics.timer(f"gateway.{method.lower()}"):
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.TimeoutException as e:
                raise TransientNetworkError(f"{method} {path} timed out") from e
            except httpx.TransportError as e:
                raise TransientNetworkError(f"{method} {path} failed: {e}") from e

        self._raise_for_status(method, path, response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(f"{method} {path} returned non-JSON body") from e

    @staticmethod
    def _raise_for_status(method: str, path: str, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        message = f"{method} {path} -> {status}"
        try:
            detail = response.json().get("message")
            if detail:
                message = f"{message}: {detail}"
        except (ValueError, AttributeError):
            pass
        if status in (401, 403):
            raise AuthorizationError(message, status)
        if status == 404:
            raise NotFoundError(message, status)
        if status == 409:
            raise ConflictError(message, status)
        if status >= 500 or status in (408, 429):
            raise TransientNetworkError(message, status)
        raise GatewayError(message, status)

    @staticmethod
    def _parse(payload: Any, parse: Callable[[Any], T], what: str) -> T:
        if payload is None:
            raise ProtocolError(f"empty {what} response")
        try:
            return parse(payload)
        except ValidationError as e:
            raise ProtocolError(f"malformed {what}: {e.error_count()} errors") from e
        except (ValueError, TypeError) as e:
            raise ProtocolError(f"malformed {what}: {e}") from e

    @staticmethod
    def _record(model: type[R]) -> Callable[[Any], R]:
        """Parser for a record the server must have assigned an id to."""

        def parse(data: Any) -> R:
            if not isinstance(data, dict):
                raise ProtocolError(f"expected a {model.__name__} object, got {type(data).__name__}")
            if coalesce_id(data) is None:
                raise ProtocolError(f"{model.__name__} response carried no id")
            return model.model_validate(data)

        return parse

    # --- Snapshot ---

    async def fetch_snapshot(self, token: str) -> Snapshot:
        data = await self._request("GET", "/snapshot", token)
        return self._parse(data, Snapshot.model_validate, "snapshot")

    async def update_mood(self, token: str, mood: str) -> Snapshot:
        data = await self._request("PUT", "/mood", token, json={"mood": mood})
        return self._parse(data, Snapshot.model_validate, "snapshot")

    async def update_theme(self, token: str, theme: Theme) -> Snapshot:
        data = await self._request("PUT", "/theme", token, json={"theme": theme.value})
        return self._parse(data, Snapshot.model_validate, "snapshot")

    # --- Habits ---

    async def add_habit(self, token: str, name: str) -> Habit:
        data = await self._request("POST", "/habit", token, json={"name": name})
        return self._parse(data, self._record(Habit), "habit")

    async def toggle_habit(self, token: str, habit_id: str) -> Habit:
        data = await self._request("PUT", f"/habit/{habit_id}/toggle", token)
        return self._parse(data, self._record(Habit), "habit")

    async def delete_habit(self, token: str, habit_id: str) -> None:
        await self._request("DELETE", f"/habit/{habit_id}", token)

    # --- Journal ---

    async def add_journal(self, token: str, text: str) -> JournalEntry:
        data = await self._request("POST", "/journal", token, json={"text": text})
        return self._parse(data, self._record(JournalEntry), "journal entry")

    async def delete_journal(self, token: str, journal_id: str) -> None:
        await self._request("DELETE", f"/journal/{journal_id}", token)

    async def journal_page(self, token: str, page: int, limit: int) -> Page[JournalEntry]:
        data = await self._request(
            "GET", "/journals", token, params={"page": page, "limit": limit}
        )
        if not isinstance(data, dict):
            raise ProtocolError("journal page response is not an object")
        return self._parse(
            data,
            lambda d: page_from_payload(d, page, limit, self._record(JournalEntry)),
            "journal page",
        )

    # --- Tasks ---

    async def add_task(self, token: str, fields: dict) -> Task:
        data = await self._request("POST", "/task", token, json=fields)
        return self._parse(data, self._record(Task), "task")

    async def update_task(self, token: str, task_id: str, fields: dict) -> Task:
        data = await self._request("PUT", f"/task/{task_id}", token, json=fields)
        return self._parse(data, self._record(Task), "task")

    async def toggle_task(self, token: str, task_id: str) -> Task:
        data = await self._request("PUT", f"/task/{task_id}/toggle", token)
        return self._parse(data, self._record(Task), "task")

    async def delete_task(self, token: str, task_id: str) -> None:
        await self._request("DELETE", f"/task/{task_id}", token)

    # --- Chat ---

    async def fetch_chat(self, token: str) -> list[ChatMessage]:
        data = await self._request("GET", "/chat", token)
        if isinstance(data, dict):
            data = data.get("messages") or []
        if not isinstance(data, list):
            raise ProtocolError("chat history response is not a list")
        parse = self._record(ChatMessage)
        return self._parse(data, lambda items: [parse(m) for m in items], "chat history")

    async def send_chat(self, token: str, text: str) -> ChatReply:
        data = await self._request("POST", "/chat", token, json={"text": text})
        if not isinstance(data, dict) or not data.get("reply"):
            raise ProtocolError("chat response carried no reply")
        user_id = data.get("userMessageId")
        reply_id = data.get("replyId")
        return ChatReply(
            reply=str(data["reply"]),
            user_message_id=str(user_id) if user_id is not None else None,
            reply_id=str(reply_id) if reply_id is not None else None,
        )

    async def clear_chat(self, token: str) -> None:
        await self._request("DELETE", "/chat", token)

    # --- Identity ---

    async def sign_in(self, email: str, password: str) -> Identity:
        """Exchange credentials for a bearer token, bounded by login_timeout."""
        data = await self._request(
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            timeout=self.login_timeout,
        )
        if not isinstance(data, dict) or not data.get("token"):
            raise ProtocolError("sign-in response carried no token")
        user = data.get("user") or {}
        user_id = user.get("id") or user.get("_id")
        if not user_id:
            raise ProtocolError("sign-in response carried no user id")
        logger.info("signed_in", user_id=str(user_id))
        return Identity(
            user_id=str(user_id),
            token=data["token"],
            name=user.get("name", ""),
            email=user.get("email", ""),
        )
