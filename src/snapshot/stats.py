"""Read-only views over a snapshot: offline search and summary stats."""

from collections import Counter
from datetime import date, datetime, timezone

from shared_types import TaskStatus

from .models import RecordValidationError, Snapshot

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def search(snapshot: Snapshot, query: str) -> list[dict]:
    """Case-insensitive substring search over habit names and journal text.

    Habits carry no timestamp of their own, so they sort as oldest.

    Raises:
        RecordValidationError: If query is empty.
    """
    needle = (query or "").strip().lower()
    if not needle:
        raise RecordValidationError("query is required")

    results = []
    for habit in snapshot.habits:
        if needle in habit.name.lower():
            results.append({"type": "Habit", "id": habit.id, "text": habit.name, "date": None})
    for entry in snapshot.journals:
        if needle in entry.text.lower():
            results.append(
                {"type": "Journal", "id": entry.id, "text": entry.text, "date": entry.created_at}
            )

    results.sort(key=lambda r: r["date"] or _EPOCH, reverse=True)
    return results


def summarize(snapshot: Snapshot, today: date | None = None) -> dict:
    """Counts for the status view."""
    habits = snapshot.habits
    streaks = [h.streak for h in habits]
    statuses = Counter(t.status for t in snapshot.tasks)
    return {
        "mood": snapshot.mood,
        "habits_total": len(habits),
        "habits_completed": sum(1 for h in habits if h.completed),
        "avg_streak": round(sum(streaks) / len(streaks), 1) if streaks else 0.0,
        "top_streak": max(streaks, default=0),
        "journals": len(snapshot.journals),
        "tasks": {status.value: statuses.get(status, 0) for status in TaskStatus},
        "tasks_overdue": sum(1 for t in snapshot.tasks if t.is_overdue(today)),
        "messages": len(snapshot.messages),
        "pending_records": sum(
            1
            for group in (snapshot.habits, snapshot.journals, snapshot.tasks, snapshot.messages)
            for record in group
            if record.is_pending
        ),
    }
