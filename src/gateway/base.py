"""Remote store contract and error taxonomy."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from shared_types import Theme
from snapshot.models import ChatMessage, Habit, JournalEntry, Snapshot, Task
from snapshot.pagination import Page


class GatewayError(Exception):
    """Base remote store error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientNetworkError(GatewayError):
    """Timeout, unreachable host, or a 5xx. Local data stays authoritative."""


class ProtocolError(GatewayError):
    """The remote answered, but with a body that does not parse."""


class AuthorizationError(GatewayError):
    """Credential expired or rejected. The user must sign in again."""


class ConflictError(GatewayError):
    """The remote state disagrees with the record being confirmed."""


class NotFoundError(ConflictError):
    """The record no longer exists remotely (deleted by another client)."""


@dataclass(frozen=True)
class Identity:
    """What the identity provider hands back on sign-in.

    The token is opaque; nothing here looks inside it.
    """

    user_id: str
    token: str
    name: str = ""
    email: str = ""

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "token": self.token, "name": self.name, "email": self.email}


@dataclass
class ChatReply:
    reply: str
    user_message_id: Optional[str] = None
    reply_id: Optional[str] = None


class RemoteGateway(ABC):
    """Authoritative store surface consumed by the reconcilers.

    Every method takes the bearer token first and raises a GatewayError
    subclass on failure.
    """

    @abstractmethod
    async def fetch_snapshot(self, token: str) -> Snapshot: ...

    @abstractmethod
    async def update_mood(self, token: str, mood: str) -> Snapshot: ...

    @abstractmethod
    async def update_theme(self, token: str, theme: Theme) -> Snapshot: ...

    @abstractmethod
    async def add_habit(self, token: str, name: str) -> Habit: ...

    @abstractmethod
    async def toggle_habit(self, token: str, habit_id: str) -> Habit: ...

    @abstractmethod
    async def delete_habit(self, token: str, habit_id: str) -> None: ...

    @abstractmethod
    async def add_journal(self, token: str, text: str) -> JournalEntry: ...

    @abstractmethod
    async def delete_journal(self, token: str, journal_id: str) -> None: ...

    @abstractmethod
    async def journal_page(self, token: str, page: int, limit: int) -> Page[JournalEntry]: ...

    @abstractmethod
    async def add_task(self, token: str, fields: dict) -> Task: ...

    @abstractmethod
    async def update_task(self, token: str, task_id: str, fields: dict) -> Task: ...

    @abstractmethod
    async def toggle_task(self, token: str, task_id: str) -> Task: ...

    @abstractmethod
    async def delete_task(self, token: str, task_id: str) -> None: ...

    @abstractmethod
    async def fetch_chat(self, token: str) -> list[ChatMessage]: ...

    @abstractmethod
    async def send_chat(self, token: str, text: str) -> ChatReply: ...

    @abstractmethod
    async def clear_chat(self, token: str) -> None: ...

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def close(self) -> None:
        """Release network resources."""
