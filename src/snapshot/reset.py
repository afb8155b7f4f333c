"""Daily habit reset policy."""

from datetime import date

from .models import Snapshot

# Same day marker the remote store writes, so a freshly loaded remote
# snapshot does not look like it is from another day.
DAY_FORMAT = "%a %b %d %Y"


def day_marker(day: date | None = None) -> str:
    """Calendar-day string for `day` (default: today in local time)."""
    return (day or date.today()).strftime(DAY_FORMAT)


def reset_if_new_day(snapshot: Snapshot, today: str | None = None) -> Snapshot:
    """Clear habit completion once per calendar day.

    Returns a new snapshot; the input is not modified. Streaks are left
    alone. Calling it again with the same `today` returns an equal snapshot.
    """
    today = today or day_marker()
    if snapshot.last_reset == today:
        return snapshot.model_copy(deep=True)

    habits = [h.model_copy(update={"completed": False}) for h in snapshot.habits]
    return snapshot.model_copy(deep=True, update={"habits": habits, "last_reset": today})
