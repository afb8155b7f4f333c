"""Transient, non-blocking notices surfaced to whatever renders the session."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Callable

import structlog

logger = structlog.get_logger().bind(source="notices")


class NoticeKind(StrEnum):
    SYNC_FAILED = "sync_failed"
    REVERTED = "reverted"
    AUTH_REQUIRED = "auth_required"
    OFFLINE = "offline"
    INFO = "info"


@dataclass
class Notice:
    kind: NoticeKind
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NoticeBoard:
    """Collects notices and fans them out to subscribers.

    Subscribers are plain callables; an exception in one does not stop the
    others or the mutation that emitted the notice.
    """

    def __init__(self, limit: int = 50):
        self.limit = limit
        self._notices: list[Notice] = []
        self._subscribers: list[Callable[[Notice], None]] = []

    def subscribe(self, callback: Callable[[Notice], None]) -> None:
        self._subscribers.append(callback)

    def post(self, kind: NoticeKind, message: str) -> Notice:
        notice = Notice(kind=kind, message=message)
        self._notices.append(notice)
        del self._notices[: -self.limit]
        for callback in self._subscribers:
            try:
                callback(notice)
            except Exception as e:
                logger.warning("notice_subscriber_failed", kind=notice.kind.value, error=str(e))
        return notice

    def drain(self) -> list[Notice]:
        """Return and forget everything posted so far."""
        notices, self._notices = self._notices, []
        return notices

    def __len__(self) -> int:
        return len(self._notices)
