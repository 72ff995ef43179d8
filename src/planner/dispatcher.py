from __future__ import annotations

from typing import Optional, Union

from .actions import Action, AddEvent, AddTodo
from .models import EventEntity, TaskEntity
from .schemas import EventCreate, TaskCreate
from .store import RecordStore


# PUBLIC_INTERFACE
def dispatch(store: RecordStore, action: Optional[Action]) -> Optional[Union[TaskEntity, EventEntity]]:
    """
    Apply a parsed action to the store.

    Returns:
        The created record, or None when there was no action.
    """
    if action is None:
        return None
    if isinstance(action, AddTodo):
        return store.add_task(TaskCreate(title=action.title))
    if isinstance(action, AddEvent):
        return store.add_event(
            EventCreate(title=action.title, date=action.date, image_index=action.image_index)
        )
    raise TypeError(f"Unsupported action: {action!r}")
