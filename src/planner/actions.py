from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from .schemas import ActionOut, parse_datetime

ADD_TODO = "ADD_TODO"
ADD_EVENT = "ADD_EVENT"


@dataclass(frozen=True)
class AddTodo:
    """Create a task with only its title set."""

    title: str


@dataclass(frozen=True)
class AddEvent:
    """Create a calendar event."""

    title: str
    date: datetime
    image_index: Optional[int] = None


Action = Union[AddTodo, AddEvent]


# PUBLIC_INTERFACE
def action_to_wire(action: Optional[Action]) -> Optional[ActionOut]:
    """Serialize an action into its ``{"type", "data"}`` wire form."""
    if action is None:
        return None
    if isinstance(action, AddTodo):
        return ActionOut(type=ADD_TODO, data={"title": action.title})
    data = {"title": action.title, "date": action.date.isoformat()}
    if action.image_index is not None:
        data["image_index"] = action.image_index
    return ActionOut(type=ADD_EVENT, data=data)


# PUBLIC_INTERFACE
def action_from_wire(payload: ActionOut) -> Action:
    """
    Build an action from its wire form.

    Raises:
        ValueError: if the title is missing/blank or an event carries no usable date.
    """
    data = payload.data
    title = str(data.get("title") or "").strip()
    if not title:
        raise ValueError("action is missing a title")

    if payload.type == ADD_TODO:
        return AddTodo(title=title)

    date = parse_datetime(data.get("date"))
    if date is None:
        raise ValueError("ADD_EVENT action is missing a date")
    raw_index = data.get("image_index", data.get("imageIndex"))
    image_index = int(raw_index) if raw_index is not None else None
    return AddEvent(title=title, date=date, image_index=image_index)
