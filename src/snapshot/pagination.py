"""Order-stable pagination shared by the online and offline journal views."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0
    current_page: int = 1

    def to_dict(self, dump: Callable[[T], Any] = lambda item: item) -> dict:
        return {
            "items": [dump(item) for item in self.items],
            "total": self.total,
            "totalPages": self.total_pages,
            "currentPage": self.current_page,
        }


def _check(page: int, page_size: int) -> None:
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")


def page_window(total: int, page: int, page_size: int) -> tuple[int, int, int]:
    """Return (start, end, total_pages) for a page, clamped to `total`."""
    _check(page, page_size)
    total_pages = math.ceil(total / page_size)
    start = min((page - 1) * page_size, total)
    end = min(page * page_size, total)
    return start, end, total_pages


def _created(item: Any) -> Optional[datetime]:
    if isinstance(item, dict):
        return item.get("created_at") or item.get("createdAt")
    return getattr(item, "created_at", None)


def newest_first(items: Sequence[T]) -> list[T]:
    """Sort newest-created first.

    Stable, so equal timestamps keep their given order. Items without a
    creation time (habits) are assumed to be ordered already.
    """
    stamps = [_created(item) for item in items]
    if not items or any(s is None for s in stamps):
        return list(items)
    order = sorted(range(len(items)), key=lambda i: stamps[i], reverse=True)
    # sorted(reverse=True) keeps ties stable in their original order
    return [items[i] for i in order]


def paginate(items: Sequence[T], page: int = 1, page_size: int = 10) -> Page[T]:
    """Window an ordered collection.

    Raises:
        ValueError: If page or page_size is below 1.
    """
    ordered = newest_first(items)
    start, end, total_pages = page_window(len(ordered), page, page_size)
    return Page(
        items=ordered[start:end],
        total=len(ordered),
        total_pages=total_pages,
        current_page=page,
    )


def page_from_payload(
    payload: dict, page: int, page_size: int, parse: Callable[[Any], T]
) -> Page[T]:
    """Build a Page from a server-paginated response.

    The page count is recomputed with the same window arithmetic as
    `paginate`, so both call sites agree for the same total.
    """
    raw_items = payload.get("items") or []
    total = int(payload.get("total", len(raw_items)))
    _, _, total_pages = page_window(total, page, page_size)
    items = newest_first([parse(item) for item in raw_items])
    return Page(
        items=items[:page_size],
        total=total,
        total_pages=total_pages,
        current_page=int(payload.get("currentPage", page)),
    )
