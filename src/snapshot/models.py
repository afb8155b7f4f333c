"""Pydantic models for a user's lifelog snapshot."""

from datetime import date, datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from shared_types import Sender, SyncState, TaskPriority, TaskStatus, Theme

from .ids import coalesce_id, infer_sync_state, new_temp_id

DEFAULT_MOOD = "😊 Thinking"
DEFAULT_HABIT_NAMES = ("Read 30 mins", "Exercise 20 mins", "Meditate")
WELCOME_MESSAGE = "Hey! How are you feeling today?"
DEFAULT_INSIGHTS = ("Stay consistent!",)


class RecordValidationError(ValueError):
    """A required field was missing or empty before a mutation was applied."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_aware(value: datetime) -> datetime:
    # Naive timestamps come from older local snapshots; they were written in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


Timestamp = Annotated[datetime, AfterValidator(_ensure_aware)]


class Record(BaseModel):
    """Common identity fields for every list-held entity.

    `id` is always an opaque string. `sync` says whether that id is a
    client-issued temporary id or the remote store's canonical id.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    sync: SyncState = SyncState.CONFIRMED

    @model_validator(mode="before")
    @classmethod
    def _normalize_identity(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        record_id = coalesce_id(data)
        data.pop("_id", None)
        if record_id is None:
            data["id"] = new_temp_id()
            data["sync"] = SyncState.PENDING
        else:
            data["id"] = record_id
            if not data.get("sync"):
                data["sync"] = infer_sync_state(record_id)
        return data

    @property
    def is_pending(self) -> bool:
        return self.sync == SyncState.PENDING

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Habit(Record):
    name: str = Field(min_length=1)
    completed: bool = False
    streak: int = 0
    category: Optional[str] = None

    @field_validator("streak", mode="before")
    @classmethod
    def _floor_streak(cls, v: Any) -> int:
        return max(0, int(v or 0))

    def toggled(self) -> "Habit":
        """Flip completion; streak moves with it and never drops below zero."""
        completed = not self.completed
        streak = self.streak + 1 if completed else max(0, self.streak - 1)
        return self.model_copy(update={"completed": completed, "streak": streak})


class JournalEntry(Record):
    text: str = Field(min_length=1)
    created_at: Timestamp = Field(
        default_factory=utc_now,
        validation_alias=AliasChoices("createdAt", "created_at", "date"),
        serialization_alias="createdAt",
    )


class Task(Record):
    title: str = Field(min_length=1)
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[date] = Field(
        None,
        validation_alias=AliasChoices("dueDate", "due_date"),
        serialization_alias="dueDate",
    )
    created_at: Timestamp = Field(
        default_factory=utc_now,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )
    completed_at: Optional[Timestamp] = Field(
        None,
        validation_alias=AliasChoices("completedAt", "completed_at"),
        serialization_alias="completedAt",
    )

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v: Any) -> str:
        return v or ""

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, v: Any) -> Any:
        return v or TaskPriority.MEDIUM

    @field_validator("due_date", mode="before")
    @classmethod
    def _date_only(cls, v: Any) -> Any:
        # The remote store sends due dates as midnight ISO timestamps
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and len(v) > 10:
            return v[:10]
        return v or None

    @model_validator(mode="after")
    def _completion_invariant(self) -> "Task":
        if self.status == TaskStatus.COMPLETED:
            if self.completed_at is None:
                self.completed_at = utc_now()
        else:
            self.completed_at = None
        return self

    def toggled(self) -> "Task":
        """Quick complete/uncomplete: completed goes back to pending."""
        if self.status == TaskStatus.COMPLETED:
            return self.model_copy(update={"status": TaskStatus.PENDING, "completed_at": None})
        return self.model_copy(update={"status": TaskStatus.COMPLETED, "completed_at": utc_now()})

    def is_overdue(self, today: date | None = None) -> bool:
        if self.due_date is None or self.status == TaskStatus.COMPLETED:
            return False
        return self.due_date < (today or date.today())


class ChatMessage(Record):
    sender: Sender = Field(
        validation_alias=AliasChoices("from", "sender"),
        serialization_alias="from",
    )
    text: str = ""
    sent_at: Timestamp = Field(
        default_factory=utc_now,
        validation_alias=AliasChoices("date", "sent_at"),
        serialization_alias="date",
    )


class Snapshot(BaseModel):
    """Everything one user identity owns, persisted as a single JSON document."""

    model_config = ConfigDict(populate_by_name=True)

    mood: str = Field(
        DEFAULT_MOOD,
        validation_alias=AliasChoices("mood", "todayMood"),
        serialization_alias="mood",
    )
    habits: list[Habit] = Field(default_factory=list)
    journals: list[JournalEntry] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    messages: list[ChatMessage] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
    theme: Theme = Theme.LIGHT
    last_reset: str = Field(
        "",
        validation_alias=AliasChoices("lastReset", "last_reset"),
        serialization_alias="lastReset",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # A null on the wire means "not supplied", not "reset to default"
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Snapshot":
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def seeded(cls, last_reset: str = "") -> "Snapshot":
        """First-run snapshot: built-in habits and a welcome message."""
        return cls(
            mood=DEFAULT_MOOD,
            habits=[Habit(id=new_temp_id(), name=n, sync=SyncState.PENDING) for n in DEFAULT_HABIT_NAMES],
            messages=[
                ChatMessage(
                    id=new_temp_id(),
                    sync=SyncState.PENDING,
                    sender=Sender.AI,
                    text=WELCOME_MESSAGE,
                )
            ],
            insights=list(DEFAULT_INSIGHTS),
            last_reset=last_reset,
        )


def require_text(value: Optional[str], field: str) -> str:
    """Strip and reject empty required text before any optimistic apply."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise RecordValidationError(f"{field} is required")
    return cleaned
