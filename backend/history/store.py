# backend/history/store.py

"""
Scan history persistence.

A store holds the ordered, append-only ScanEvent sequence (newest first,
the way scans are prepended as they arrive). Writers are serialized with
a lock and ``load`` always returns a full snapshot.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List

from pydantic import TypeAdapter, ValidationError

from backend import config
from backend.db import get_cursor, init_db
from backend.models import IntentType, ScanEvent

logger = logging.getLogger("qrhub.history")

EventPredicate = Callable[[ScanEvent], bool]

_EVENT_LIST = TypeAdapter(List[ScanEvent])


class HistoryCorruptError(ValueError):
    """Raised when persisted history cannot be parsed; the file is left untouched."""


class HistoryStore(ABC):
    """Narrow contract every history backend implements."""

    @abstractmethod
    def load(self) -> List[ScanEvent]:
        ...

    @abstractmethod
    def append(self, event: ScanEvent) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def remove_where(self, predicate: EventPredicate) -> int:
        ...


class JsonFileStore(HistoryStore):
    """Whole history serialized as one JSON array in a text file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _read(self) -> List[ScanEvent]:
        if not self.path.exists():
            return []
        try:
            return _EVENT_LIST.validate_json(self.path.read_bytes())
        except ValidationError as exc:
            logger.error(
                json.dumps(
                    {"event": "history_load_failed", "path": str(self.path), "error": str(exc)}
                )
            )
            raise HistoryCorruptError(
                f"Scan history at {self.path} is unreadable; refusing to overwrite it."
            ) from exc

    def _write(self, events: List[ScanEvent]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_bytes(_EVENT_LIST.dump_json(events))
        tmp.replace(self.path)

    def load(self) -> List[ScanEvent]:
        with self._lock:
            return self._read()

    def append(self, event: ScanEvent) -> None:
        with self._lock:
            events = self._read()
            if any(existing.id == event.id for existing in events):
                raise ValueError(f"Duplicate scan id: {event.id}")
            events.insert(0, event)
            self._write(events)

    def clear(self) -> None:
        with self._lock:
            if self.path.exists():
                self.path.unlink()

    def remove_where(self, predicate: EventPredicate) -> int:
        with self._lock:
            events = self._read()
            kept = [e for e in events if not predicate(e)]
            removed = len(events) - len(kept)
            if removed:
                self._write(kept)
            return removed


class PostgresStore(HistoryStore):
    """scan_events table; insertion order tracked by the serial seq column."""

    def __init__(self):
        self._lock = threading.Lock()
        init_db()

    @staticmethod
    def _row_to_event(row) -> ScanEvent:
        return ScanEvent(
            id=row["id"],
            data=row["data"],
            timestamp=int(row["ts_ms"]),
            type=IntentType(row["type"]),
            format=row.get("format") or "QR_CODE",
        )

    def load(self) -> List[ScanEvent]:
        with get_cursor() as (_, cur):
            cur.execute(
                """
                SELECT id, data, ts_ms, type, format
                FROM scan_events
                ORDER BY seq DESC
                """
            )
            rows = cur.fetchall() or []
        return [self._row_to_event(row) for row in rows]

    def append(self, event: ScanEvent) -> None:
        with self._lock, get_cursor() as (_, cur):
            cur.execute(
                """
                INSERT INTO scan_events (id, data, ts_ms, type, format)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (event.id, event.data, event.timestamp, event.type.value, event.format),
            )

    def clear(self) -> None:
        with self._lock, get_cursor() as (_, cur):
            cur.execute("DELETE FROM scan_events;")

    def remove_where(self, predicate: EventPredicate) -> int:
        with self._lock:
            doomed = [e.id for e in self.load() if predicate(e)]
            if not doomed:
                return 0
            with get_cursor() as (_, cur):
                cur.execute("DELETE FROM scan_events WHERE id = ANY(%s);", (doomed,))
                return cur.rowcount


def build_store() -> HistoryStore:
    backend = config.HISTORY_BACKEND
    if backend == "json":
        return JsonFileStore(config.HISTORY_FILE)
    if backend == "postgres":
        return PostgresStore()
    raise RuntimeError(f"Unknown QRHUB_HISTORY_BACKEND: {backend!r} (expected json or postgres)")
