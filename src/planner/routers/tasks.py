from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from ..schemas import TaskCreate, TaskOut, TaskUpdate
from ..selectors import filtered_tasks
from ..store import RecordStore, get_store

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)


class TaskList(BaseModel):
    """
    Envelope for task list responses.
    """
    items: List[TaskOut] = Field(..., description="Tasks in display order")
    total: int = Field(..., description="Number of tasks matching the filters")


def _get_store(store: RecordStore = Depends(get_store)) -> RecordStore:
    """
    Dependency wrapper for the record store to keep signatures clean.
    """
    return store


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task and return the created resource.",
    responses={
        201: {"description": "Task created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_task(payload: TaskCreate, store: RecordStore = Depends(_get_store)) -> TaskOut:
    """
    Create a new task.
    """
    created = store.add_task(payload)
    return TaskOut(**created)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TaskList,
    summary="List Tasks",
    description=(
        "List tasks with optional filters.\n\n"
        "Query parameters:\n"
        "- status: all, active or completed\n"
        "- q: search query for title/description (case-insensitive substring match)\n\n"
        "Incomplete tasks come first, newest first within each group."
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "Invalid query parameters"},
    },
)
def list_tasks(
    status_filter: str = Query("all", alias="status", description="all, active or completed"),
    q: Optional[str] = Query(None, description="Search text for title/description"),
    store: RecordStore = Depends(_get_store),
) -> TaskList:
    """
    List tasks through the status/search view.
    """
    try:
        items = filtered_tasks(store.list_tasks(), status_filter, q or "")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return TaskList(items=[TaskOut(**t) for t in items], total=len(items))


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    responses={
        200: {"description": "Task found"},
        404: {"description": "Task not found"},
    },
)
def get_task(task_id: int, store: RecordStore = Depends(_get_store)) -> TaskOut:
    """
    Retrieve a single task by its ID.
    """
    item = store.get_task(task_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return TaskOut(**item)


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description="Partially update fields of a task. An unknown ID is a no-op answered with 204.",
    responses={
        200: {"description": "Task updated"},
        204: {"description": "No such task; nothing changed"},
    },
)
def patch_task(task_id: int, payload: TaskUpdate, store: RecordStore = Depends(_get_store)):
    """
    Partial update of a task.
    """
    updated = store.update_task(task_id, payload)
    if updated is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return TaskOut(**updated)


# PUBLIC_INTERFACE
@router.post(
    "/{task_id}/toggle",
    response_model=TaskOut,
    summary="Toggle Task Completion",
    responses={
        200: {"description": "Task toggled"},
        204: {"description": "No such task; nothing changed"},
    },
)
def toggle_task(task_id: int, store: RecordStore = Depends(_get_store)):
    """
    Flip a task between completed and not completed.
    """
    toggled = store.toggle_task_complete(task_id)
    if toggled is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return TaskOut(**toggled)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    description="Delete a task by ID. Deleting an unknown ID is a no-op.",
    responses={204: {"description": "Task deleted or already absent"}},
)
def delete_task(task_id: int, store: RecordStore = Depends(_get_store)) -> Response:
    """
    Delete a task. Always returns 204.
    """
    store.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
