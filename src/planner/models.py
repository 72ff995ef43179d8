from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, TypedDict

TaskStatus = Literal["not-started", "in-progress", "completed"]

TASK_STATUSES = ("not-started", "in-progress", "completed")
STATUS_NOT_STARTED = "not-started"
STATUS_COMPLETED = "completed"


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A task as held by the record store.

    Fields:
    - id: Unique integer identifier, never reused
    - title: Short title (1..200 chars, trimmed on input via schemas)
    - description: Optional rich-text description
    - status: 'not-started', 'in-progress' or 'completed'
    - due_date: Optional due datetime
    - created_at: Local creation timestamp, set once
    - completed: Mirrors status == 'completed'
    - completed_at: Set exactly while status is 'completed'
    """

    id: int
    title: str
    description: Optional[str]
    status: TaskStatus
    due_date: Optional[datetime]
    created_at: datetime
    completed: bool
    completed_at: Optional[datetime]


# PUBLIC_INTERFACE
class EventEntity(TypedDict):
    """
    A calendar event as held by the record store.

    Fields:
    - id: Unique integer identifier, never reused
    - title: Short title
    - date: When the event happens (required)
    - description: Optional description
    - reminder: Optional minutes-before offset (>= 0)
    - image_index: Optional decorative image number (>= 1)
    - completed: Completion flag
    - completed_at: Set exactly while completed is True
    - created_at: Local creation timestamp, set once
    """

    id: int
    title: str
    date: datetime
    description: Optional[str]
    reminder: Optional[int]
    image_index: Optional[int]
    completed: bool
    completed_at: Optional[datetime]
    created_at: datetime
