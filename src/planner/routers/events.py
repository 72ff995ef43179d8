from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..schemas import EventCreate, EventOut, EventUpdate
from ..selectors import events_grouped_by_date, events_on_date
from ..store import RecordStore, get_store

router = APIRouter(
    prefix="/api/v1/events",
    tags=["events"],
)


def _get_store(store: RecordStore = Depends(get_store)) -> RecordStore:
    return store


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=EventOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Event",
    responses={
        201: {"description": "Event created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_event(payload: EventCreate, store: RecordStore = Depends(_get_store)) -> EventOut:
    """
    Create a new calendar event.
    """
    created = store.add_event(payload)
    return EventOut(**created)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[EventOut],
    summary="List Events",
    description="List events in insertion order, optionally only those on one day (date=YYYY-MM-DD).",
)
def list_events(
    on: Optional[date] = Query(None, alias="date", description="Only events on this local day"),
    store: RecordStore = Depends(_get_store),
) -> List[EventOut]:
    events = store.list_events()
    if on is not None:
        events = events_on_date(events, on)
    return [EventOut(**e) for e in events]


# PUBLIC_INTERFACE
@router.get(
    "/grouped",
    response_model=Dict[str, List[EventOut]],
    summary="Events Grouped By Day",
    description="Events keyed by local day (YYYY-MM-DD), days ascending.",
)
def grouped_events(store: RecordStore = Depends(_get_store)) -> Dict[str, List[EventOut]]:
    groups = events_grouped_by_date(store.list_events())
    return {day: [EventOut(**e) for e in items] for day, items in groups.items()}


# PUBLIC_INTERFACE
@router.get(
    "/{event_id}",
    response_model=EventOut,
    summary="Get Event",
    responses={
        200: {"description": "Event found"},
        404: {"description": "Event not found"},
    },
)
def get_event(event_id: int, store: RecordStore = Depends(_get_store)) -> EventOut:
    item = store.get_event(event_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return EventOut(**item)


# PUBLIC_INTERFACE
@router.patch(
    "/{event_id}",
    response_model=EventOut,
    summary="Update Event",
    description="Partially update fields of an event. An unknown ID is a no-op answered with 204.",
    responses={
        200: {"description": "Event updated"},
        204: {"description": "No such event; nothing changed"},
    },
)
def patch_event(event_id: int, payload: EventUpdate, store: RecordStore = Depends(_get_store)):
    updated = store.update_event(event_id, payload)
    if updated is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return EventOut(**updated)


# PUBLIC_INTERFACE
@router.post(
    "/{event_id}/toggle",
    response_model=EventOut,
    summary="Toggle Event Completion",
    responses={
        200: {"description": "Event toggled"},
        204: {"description": "No such event; nothing changed"},
    },
)
def toggle_event(event_id: int, store: RecordStore = Depends(_get_store)):
    toggled = store.toggle_event_complete(event_id)
    if toggled is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return EventOut(**toggled)


# PUBLIC_INTERFACE
@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Event",
    responses={204: {"description": "Event deleted or already absent"}},
)
def delete_event(event_id: int, store: RecordStore = Depends(_get_store)) -> Response:
    store.delete_event(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
