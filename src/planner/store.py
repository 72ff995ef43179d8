from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from functools import lru_cache
from threading import Lock, RLock
from typing import Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from .dates import Clock
from .models import STATUS_COMPLETED, STATUS_NOT_STARTED, EventEntity, TaskEntity
from .schemas import EventCreate, EventOut, EventUpdate, TaskCreate, TaskOut, TaskUpdate
from .settings import get_settings
from .storage import EVENTS_KEY, TASKS_KEY, Records, StorageError, StoragePort, get_storage

logger = logging.getLogger(__name__)

Subscriber = Callable[[str], None]


class MonotonicIds:
    """
    Strictly increasing integer ids derived from wall-clock milliseconds.

    An id is never lower than the previous one plus one, and ``observe`` lets
    ids loaded from storage push the floor up so they are never handed out again.
    """

    def __init__(self, clock: Clock = datetime.now) -> None:
        self._clock = clock
        self._last = 0
        self._lock = Lock()

    def observe(self, existing_id: int) -> None:
        with self._lock:
            self._last = max(self._last, existing_id)

    def __call__(self) -> int:
        with self._lock:
            candidate = int(self._clock().timestamp() * 1000)
            self._last = max(self._last + 1, candidate)
            return self._last


class ImmediateWriter:
    """
    Persists synchronously on the calling thread.

    A failed save is logged and the in-memory state is kept; the next
    mutation of the collection writes it in full again.
    """

    def __init__(self, storage: StoragePort) -> None:
        self._storage = storage

    def write(self, name: str, records: Records) -> None:
        try:
            self._storage.save(name, records)
        except StorageError as e:
            logger.error("Failed to persist collection %r: %s", name, e)

    def flush(self) -> None:
        return None

    def close(self) -> None:
        return None


class WriteBehindWriter:
    """
    Persists on a single background worker.

    The worker drains writes in submission order, so a collection is never
    overwritten by a snapshot older than the last one submitted. Failures are
    logged since the caller has already moved on.
    """

    def __init__(self, storage: StoragePort) -> None:
        self._storage = storage
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="planner-writer")

    def write(self, name: str, records: Records) -> None:
        future = self._executor.submit(self._storage.save, name, records)
        future.add_done_callback(lambda f, n=name: self._report(n, f))

    @staticmethod
    def _report(name: str, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Failed to persist collection %r", name, exc_info=exc)

    def flush(self) -> None:
        """Block until every write submitted so far has finished."""
        self._executor.submit(lambda: None).result()

    def close(self) -> None:
        self._executor.shutdown(wait=True)


def _snapshot(items: List[dict], schema: Type[BaseModel]) -> Records:
    return [schema.model_validate(item).model_dump(mode="json") for item in items]


# PUBLIC_INTERFACE
class RecordStore:
    """
    Owner of the canonical task and event collections.

    Every mutation updates memory first, then hands a snapshot of the touched
    collection to the writer, then notifies subscribers. Callers only ever
    receive copies of the stored records.
    """

    def __init__(
        self,
        storage: StoragePort,
        clock: Clock = datetime.now,
        ids: Optional[MonotonicIds] = None,
        writer=None,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._ids = ids or MonotonicIds(clock)
        self._writer = writer or ImmediateWriter(storage)
        self._lock = RLock()
        self._tasks: List[TaskEntity] = []
        self._events: List[EventEntity] = []
        self._subscribers: List[Subscriber] = []

    # ---- lifecycle -------------------------------------------------------

    def load(self) -> None:
        """
        Read both collections from storage.

        A collection that cannot be read or does not match its schema starts
        out empty and a warning is logged.
        """
        now = self._clock()
        tasks = [_normalize_task(t, now) for t in self._load_collection(TASKS_KEY, TaskOut)]
        events = [_normalize_event(e, now) for e in self._load_collection(EVENTS_KEY, EventOut)]
        with self._lock:
            self._tasks = tasks  # type: ignore[assignment]
            self._events = events  # type: ignore[assignment]
            for item in [*tasks, *events]:
                self._ids.observe(item["id"])
        logger.info("Loaded %d tasks and %d events", len(tasks), len(events))

    def _load_collection(self, name: str, schema: Type[BaseModel]) -> List[dict]:
        try:
            raw = self._storage.load(name)
        except StorageError as e:
            logger.warning("Ignoring unreadable collection %r: %s", name, e)
            return []
        if raw is None:
            return []
        try:
            return [schema.model_validate(item).model_dump() for item in raw]
        except ValidationError as e:
            logger.warning("Ignoring corrupt collection %r: %s", name, e)
            return []

    def flush(self) -> None:
        self._writer.flush()

    def close(self) -> None:
        self._writer.close()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register ``callback(collection_name)`` to run after each mutation.

        Returns:
            A callable that removes the subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _commit(self, name: str) -> None:
        with self._lock:
            if name == TASKS_KEY:
                records = _snapshot(self._tasks, TaskOut)  # type: ignore[arg-type]
            else:
                records = _snapshot(self._events, EventOut)  # type: ignore[arg-type]
            self._writer.write(name, records)
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(name)

    # ---- tasks -----------------------------------------------------------

    def list_tasks(self) -> List[TaskEntity]:
        with self._lock:
            return [t.copy() for t in self._tasks]

    def get_task(self, task_id: int) -> Optional[TaskEntity]:
        with self._lock:
            item = self._find(self._tasks, task_id)
            return None if item is None else item.copy()

    def add_task(self, data: TaskCreate) -> TaskEntity:
        now = self._clock()
        done = data.status == STATUS_COMPLETED
        entity: TaskEntity = {
            "id": self._ids(),
            "title": data.title,
            "description": data.description,
            "status": data.status,
            "due_date": data.due_date,
            "created_at": now,
            "completed": done,
            "completed_at": now if done else None,
        }
        with self._lock:
            self._tasks.append(entity)
            created = entity.copy()
        self._commit(TASKS_KEY)
        return created

    def update_task(self, task_id: int, data: TaskUpdate) -> Optional[TaskEntity]:
        """
        Merge the explicitly set fields of ``data`` into a task.

        ``status`` (or ``completed`` when no status is given) drives completion:
        entering 'completed' stamps completed_at with the current time, leaving
        it clears completed_at. Unknown ids are a no-op returning None.
        """
        fields = data.model_fields_set
        with self._lock:
            existing = self._find(self._tasks, task_id)
            if existing is None:
                return None

            updated = existing.copy()
            if "title" in fields and data.title is not None:
                updated["title"] = data.title
            if "description" in fields:
                updated["description"] = data.description
            if "due_date" in fields:
                updated["due_date"] = data.due_date

            status = existing["status"]
            if "status" in fields and data.status is not None:
                status = data.status
            elif "completed" in fields and data.completed is not None:
                if data.completed:
                    status = STATUS_COMPLETED
                elif status == STATUS_COMPLETED:
                    status = STATUS_NOT_STARTED

            updated["status"] = status
            updated["completed"] = status == STATUS_COMPLETED
            if status != STATUS_COMPLETED:
                updated["completed_at"] = None
            elif existing["status"] != STATUS_COMPLETED or existing["completed_at"] is None:
                updated["completed_at"] = self._clock()

            self._replace(self._tasks, updated)
            result = updated.copy()
        self._commit(TASKS_KEY)
        return result

    def delete_task(self, task_id: int) -> bool:
        with self._lock:
            removed = self._remove(self._tasks, task_id)
        if removed:
            self._commit(TASKS_KEY)
        return removed

    def toggle_task_complete(self, task_id: int) -> Optional[TaskEntity]:
        """
        Flip a task between completed and not completed.

        Completion is carried by ``status``; un-completing a task puts it back to
        'not-started'.
        """
        with self._lock:
            existing = self._find(self._tasks, task_id)
            if existing is None:
                return None
            return self.update_task(task_id, TaskUpdate(completed=not existing["completed"]))

    # ---- events ----------------------------------------------------------

    def list_events(self) -> List[EventEntity]:
        with self._lock:
            return [e.copy() for e in self._events]

    def get_event(self, event_id: int) -> Optional[EventEntity]:
        with self._lock:
            item = self._find(self._events, event_id)
            return None if item is None else item.copy()

    def add_event(self, data: EventCreate) -> EventEntity:
        now = self._clock()
        entity: EventEntity = {
            "id": self._ids(),
            "title": data.title,
            "date": data.date,
            "description": data.description,
            "reminder": data.reminder,
            "image_index": data.image_index,
            "completed": data.completed,
            "completed_at": now if data.completed else None,
            "created_at": now,
        }
        with self._lock:
            self._events.append(entity)
            created = entity.copy()
        self._commit(EVENTS_KEY)
        return created

    def update_event(self, event_id: int, data: EventUpdate) -> Optional[EventEntity]:
        """
        Merge the explicitly set fields of ``data`` into an event, keeping
        completed_at set exactly while the event is completed.
        """
        fields = data.model_fields_set
        with self._lock:
            existing = self._find(self._events, event_id)
            if existing is None:
                return None

            updated = existing.copy()
            for key in ("title", "date"):
                if key in fields and getattr(data, key) is not None:
                    updated[key] = getattr(data, key)  # type: ignore[literal-required]
            for key in ("description", "reminder", "image_index"):
                if key in fields:
                    updated[key] = getattr(data, key)  # type: ignore[literal-required]

            if "completed" in fields and data.completed is not None:
                updated["completed"] = data.completed
            if not updated["completed"]:
                updated["completed_at"] = None
            elif not existing["completed"] or existing["completed_at"] is None:
                updated["completed_at"] = self._clock()

            self._replace(self._events, updated)
            result = updated.copy()
        self._commit(EVENTS_KEY)
        return result

    def delete_event(self, event_id: int) -> bool:
        with self._lock:
            removed = self._remove(self._events, event_id)
        if removed:
            self._commit(EVENTS_KEY)
        return removed

    def toggle_event_complete(self, event_id: int) -> Optional[EventEntity]:
        with self._lock:
            existing = self._find(self._events, event_id)
            if existing is None:
                return None
            return self.update_event(event_id, EventUpdate(completed=not existing["completed"]))

    # ---- helpers ---------------------------------------------------------

    @staticmethod
    def _find(items: List, item_id: int) -> Optional[Dict]:
        for item in items:
            if item["id"] == item_id:
                return item
        return None

    @staticmethod
    def _replace(items: List, updated: Dict) -> None:
        for i, item in enumerate(items):
            if item["id"] == updated["id"]:
                items[i] = updated
                return

    @staticmethod
    def _remove(items: List, item_id: int) -> bool:
        for i, item in enumerate(items):
            if item["id"] == item_id:
                del items[i]
                return True
        return False


def _normalize_task(task: dict, now: datetime) -> dict:
    task["completed"] = task["status"] == STATUS_COMPLETED
    return _couple_completed_at(task, now)


def _normalize_event(event: dict, now: datetime) -> dict:
    return _couple_completed_at(event, now)


def _couple_completed_at(record: dict, now: datetime) -> dict:
    # completed records loaded without a timestamp are stamped with the load time
    if not record["completed"]:
        record["completed_at"] = None
    elif record["completed_at"] is None:
        record["completed_at"] = now
    return record


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_store() -> RecordStore:
    """
    Return the process-wide store for the configured storage backend,
    loaded from storage on first use.
    """
    settings = get_settings()
    storage = get_storage(settings)
    writer = WriteBehindWriter(storage) if settings.write_behind else None
    store = RecordStore(storage, writer=writer)
    store.load()
    return store
