from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .models import TaskStatus

# Shared type for incoming datetimes which can be a date, datetime, or ISO8601 string
DateInput = Union[date, datetime, str]

TITLE_MAX_LENGTH = 200
MESSAGE_MAX_LENGTH = 2000


def parse_datetime(value: Optional[DateInput]) -> Optional[datetime]:
    """
    Normalize date input into a datetime (naive allowed).
    - If value is a string, attempt to parse via datetime.fromisoformat; if time is missing, set to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - If value is a datetime, return as-is.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 0, 0, 0)

    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(s)
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, 0, 0, 0)
            except ValueError as e:
                raise ValueError(
                    "Invalid date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for date; expected date, datetime, or ISO8601 string.")


def _clean_title(v: str) -> str:
    s = v.strip()
    if not (1 <= len(s) <= TITLE_MAX_LENGTH):
        raise ValueError(f"title length must be between 1 and {TITLE_MAX_LENGTH} characters")
    return s


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task. Only the title is required.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "status": "not-started",
                "due_date": "2025-02-01",
            }
        }
    )

    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional rich-text description")
    status: TaskStatus = Field(default="not-started", description="Workflow status")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DateInput]) -> Optional[datetime]:
        return parse_datetime(v)


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated.

    Setting ``status`` or ``completed`` both move the task through the same
    completion rules; ``status`` wins when both are given.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "status": "in-progress",
                "due_date": "2025-02-02T09:30:00",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional rich-text description")
    status: Optional[TaskStatus] = Field(default=None, description="Workflow status")
    completed: Optional[bool] = Field(default=None, description="Completion flag")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DateInput]) -> Optional[datetime]:
        return parse_datetime(v)


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task. Also the persisted record shape.
    """

    id: int = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional description")
    status: TaskStatus = Field(..., description="Workflow status")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time")
    created_at: datetime = Field(..., description="Creation timestamp")
    completed: bool = Field(..., description="Completion flag, mirrors status")
    completed_at: Optional[datetime] = Field(default=None, description="Completion timestamp")


# PUBLIC_INTERFACE
class EventCreate(BaseModel):
    """
    Schema for creating a new calendar event.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Lunch with Amy",
                "date": "2025-05-15T12:30:00",
                "reminder": 15,
            }
        },
    )

    title: str = Field(..., description="Short title for the event")
    date: datetime = Field(..., description="When the event happens")
    description: Optional[str] = Field(default=None, description="Optional description")
    reminder: Optional[int] = Field(default=None, ge=0, description="Reminder offset in minutes before the event")
    image_index: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("image_index", "imageIndex"),
        description="Decorative image number",
    )
    completed: bool = Field(default=False, description="Completion flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: DateInput) -> Optional[datetime]:
        return parse_datetime(v)


# PUBLIC_INTERFACE
class EventUpdate(BaseModel):
    """
    Schema for updating an existing calendar event.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, description="Short title for the event")
    date: Optional[datetime] = Field(default=None, description="When the event happens")
    description: Optional[str] = Field(default=None, description="Optional description")
    reminder: Optional[int] = Field(default=None, ge=0, description="Reminder offset in minutes")
    image_index: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("image_index", "imageIndex"),
        description="Decorative image number",
    )
    completed: Optional[bool] = Field(default=None, description="Completion flag")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_title(v)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Optional[DateInput]) -> Optional[datetime]:
        if v is None:
            raise ValueError("date cannot be cleared")
        return parse_datetime(v)


# PUBLIC_INTERFACE
class EventOut(BaseModel):
    """
    Schema returned by the API for a calendar event. Also the persisted record shape.
    """

    id: int = Field(..., description="Unique identifier of the event")
    title: str = Field(..., description="Short title for the event")
    date: datetime = Field(..., description="When the event happens")
    description: Optional[str] = Field(default=None, description="Optional description")
    reminder: Optional[int] = Field(default=None, description="Reminder offset in minutes")
    image_index: Optional[int] = Field(default=None, description="Decorative image number")
    completed: bool = Field(..., description="Completion flag")
    completed_at: Optional[datetime] = Field(default=None, description="Completion timestamp")
    created_at: datetime = Field(..., description="Creation timestamp")


# PUBLIC_INTERFACE
class ActionOut(BaseModel):
    """
    Wire form of a parsed chat action: ``{"type": ..., "data": {...}}``.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"type": "ADD_EVENT", "data": {"title": "Lunch with Amy", "date": "2025-05-15T00:00:00", "image_index": 2}}
        }
    )

    type: Literal["ADD_TODO", "ADD_EVENT"] = Field(..., description="Action kind")
    data: Dict[str, Any] = Field(default_factory=dict, description="Fields of the record to create")


# PUBLIC_INTERFACE
class HistoryItem(BaseModel):
    """A prior chat exchange."""

    sender: str = Field(..., description="'user' or 'assistant'")
    text: str = Field(..., description="Message text")


# PUBLIC_INTERFACE
class ChatRequest(BaseModel):
    """Schema for a chat message sent to the assistant."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "add task: buy groceries",
                "history": [{"sender": "assistant", "text": "How can I help?"}],
            }
        }
    )

    message: str = Field(..., max_length=MESSAGE_MAX_LENGTH, description="Free-text message")
    history: List[HistoryItem] = Field(default_factory=list, description="Earlier exchanges, oldest first")


# PUBLIC_INTERFACE
class ChatResponse(BaseModel):
    """Assistant reply with the action it derived, if any."""

    message: str = Field(..., description="Reply shown to the user")
    action: Optional[ActionOut] = Field(default=None, description="Structured action, or null")
