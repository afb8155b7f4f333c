"""Shared enums and types for lifelog-sync."""

from enum import StrEnum


class Theme(StrEnum):
    LIGHT = "light"
    DARK = "dark"


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class Sender(StrEnum):
    USER = "user"
    AI = "ai"


class SyncState(StrEnum):
    """Which identifier space a record's id belongs to."""

    PENDING = "pending"
    CONFIRMED = "confirmed"


class EntityKind(StrEnum):
    HABIT = "habit"
    JOURNAL = "journal"
    TASK = "task"
    MESSAGE = "message"
