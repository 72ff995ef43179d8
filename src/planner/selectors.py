from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List

from .models import EventEntity, TaskEntity

STATUS_FILTERS = ("all", "active", "completed")


def _matches_query(task: TaskEntity, query: str) -> bool:
    title_ok = query in (task["title"] or "").lower()
    desc_ok = query in (task["description"] or "").lower()
    return title_ok or desc_ok


# PUBLIC_INTERFACE
def filtered_tasks(
    tasks: Iterable[TaskEntity],
    status_filter: str = "all",
    search_query: str = "",
) -> List[TaskEntity]:
    """
    Tasks matching a status filter and a search query, in display order.

    - status_filter: 'all', 'active' (not completed) or 'completed'
    - search_query: case-insensitive substring of title or description; empty matches everything
    - order: incomplete tasks first, newest created_at first within each group

    Raises:
        ValueError: for an unknown status filter.
    """
    status = (status_filter or "all").strip().lower()
    if status not in STATUS_FILTERS:
        raise ValueError(f"status filter must be one of {', '.join(STATUS_FILTERS)}")

    items = list(tasks)
    if status == "active":
        items = [t for t in items if not t["completed"]]
    elif status == "completed":
        items = [t for t in items if t["completed"]]

    query = (search_query or "").strip().lower()
    if query:
        items = [t for t in items if _matches_query(t, query)]

    items.sort(key=lambda t: t["created_at"], reverse=True)
    items.sort(key=lambda t: t["completed"])
    return items


def day_key(event: EventEntity) -> str:
    when = event["date"]
    if when.tzinfo is not None:
        when = when.astimezone()
    return when.date().isoformat()


# PUBLIC_INTERFACE
def events_grouped_by_date(events: Iterable[EventEntity]) -> Dict[str, List[EventEntity]]:
    """
    Events keyed by local calendar day ('YYYY-MM-DD').

    Keys come out in ascending order; events within a day keep their insertion order.
    """
    groups: Dict[str, List[EventEntity]] = {}
    for event in events:
        groups.setdefault(day_key(event), []).append(event)
    return {key: groups[key] for key in sorted(groups)}


# PUBLIC_INTERFACE
def events_on_date(events: Iterable[EventEntity], day: date) -> List[EventEntity]:
    """Events whose date falls on ``day``, in insertion order."""
    wanted = day.isoformat()
    return [e for e in events if day_key(e) == wanted]
