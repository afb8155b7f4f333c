from .models import (
    ChatMessage,
    Habit,
    JournalEntry,
    RecordValidationError,
    Snapshot,
    Task,
)
from .pagination import Page, paginate
from .reset import day_marker, reset_if_new_day

__all__ = [
    "Snapshot",
    "Habit",
    "JournalEntry",
    "Task",
    "ChatMessage",
    "RecordValidationError",
    "Page",
    "paginate",
    "day_marker",
    "reset_if_new_day",
]
