from __future__ import annotations

import json
import os
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Any, Dict, Generator, List, Optional

from .settings import Settings, get_settings

Records = List[Dict[str, Any]]

TASKS_KEY = "todos"
EVENTS_KEY = "calendar_events"


class StorageError(Exception):
    """Raised when a storage backend cannot read or write a collection."""


# PUBLIC_INTERFACE
class StoragePort(ABC):
    """
    Durable key/value contract for named record collections.

    Each collection is stored as one JSON array of records under its name.
    """

    @abstractmethod
    def load(self, name: str) -> Optional[Records]:
        """
        Return the stored records for ``name``, or None if nothing was stored.

        Raises:
            StorageError: if the stored payload cannot be read or is not a JSON array.
        """

    @abstractmethod
    def save(self, name: str, records: Records) -> None:
        """Replace the stored collection ``name`` with ``records``."""


def _decode(name: str, payload: str) -> Records:
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise StorageError(f"collection {name!r} is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise StorageError(f"collection {name!r} is not a JSON array")
    return data


class InMemoryStorage(StoragePort):
    """
    Storage kept in process memory, serialized exactly like the durable backends.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._lock = RLock()
        self._payloads: Dict[str, str] = dict(initial or {})

    def load(self, name: str) -> Optional[Records]:
        with self._lock:
            payload = self._payloads.get(name)
        if payload is None:
            return None
        return _decode(name, payload)

    def save(self, name: str, records: Records) -> None:
        payload = json.dumps(records)
        with self._lock:
            self._payloads[name] = payload

    def raw(self, name: str) -> Optional[str]:
        with self._lock:
            return self._payloads.get(name)


class JsonFileStorage(StoragePort):
    """
    One ``<name>.json`` file per collection inside ``directory``.
    """

    def __init__(self, directory: str) -> None:
        os.makedirs(directory or ".", exist_ok=True)
        self._dir = directory or "."

    def _path(self, name: str) -> str:
        return os.path.join(self._dir, f"{name}.json")

    def load(self, name: str) -> Optional[Records]:
        path = self._path(name)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"cannot read {path}: {e}") from e
        return _decode(name, payload)

    def save(self, name: str, records: Records) -> None:
        path = self._path(name)
        # Write to a sibling temp file and swap it in so readers never see a partial file
        fd, tmp_path = tempfile.mkstemp(dir=self._dir, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"cannot write {path}: {e}") from e


@dataclass(frozen=True)
class _Cols:
    table: str = "collections"
    name: str = "name"
    payload: str = "payload"


_COLS = _Cols()


class SQLiteStorage(StoragePort):
    """
    Lightweight SQLite key/value table holding one JSON payload per collection.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.name} TEXT PRIMARY KEY,
                    {_COLS.payload} TEXT NOT NULL
                )
                """
            )

    def load(self, name: str) -> Optional[Records]:
        try:
            with self._conn() as conn:
                row = conn.execute(
                    f"SELECT {_COLS.payload} FROM {_COLS.table} WHERE {_COLS.name} = ?", (name,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"cannot read collection {name!r}: {e}") from e
        if row is None:
            return None
        return _decode(name, str(row[_COLS.payload]))

    def save(self, name: str, records: Records) -> None:
        payload = json.dumps(records)
        try:
            with self._conn() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {_COLS.table} ({_COLS.name}, {_COLS.payload}) VALUES (?, ?)
                    ON CONFLICT({_COLS.name}) DO UPDATE SET {_COLS.payload} = excluded.{_COLS.payload}
                    """,
                    (name, payload),
                )
        except sqlite3.Error as e:
            raise StorageError(f"cannot write collection {name!r}: {e}") from e


# PUBLIC_INTERFACE
def get_storage(settings: Optional[Settings] = None) -> StoragePort:
    """
    Factory to return the configured storage backend.
    - memory: InMemoryStorage
    - json: JsonFileStorage in JSON_STORAGE_DIR
    - sqlite: SQLiteStorage at SQLITE_DB_PATH
    """
    s = settings or get_settings()
    if s.storage_backend == "json":
        return JsonFileStorage(s.json_storage_dir)
    if s.storage_backend == "sqlite":
        return SQLiteStorage(s.sqlite_db_path)
    return InMemoryStorage()
