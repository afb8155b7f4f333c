"""CLI command modules."""

from .account import login, logout, mood, search, status, theme
from .chat import chat
from .habits import habit
from .journal import journal
from .tasks import task

__all__ = [
    "status",
    "login",
    "logout",
    "mood",
    "theme",
    "search",
    "habit",
    "journal",
    "task",
    "chat",
]
