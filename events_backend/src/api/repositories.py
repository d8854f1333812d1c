from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import EVENT_FIELDS, EventEntity


# PUBLIC_INTERFACE
class EventRepository(ABC):
    """
    Abstract contract for the ``events`` table.

    Each method is exactly one store round-trip. Failures reported by the store
    are raised as ``StoreError`` with the store's message.
    """

    @abstractmethod
    def list_from(self, start: datetime) -> List[EventEntity]:
        """Return events with start_datetime >= start, ascending by start_datetime."""

    @abstractmethod
    def list_all(self) -> List[EventEntity]:
        """Return every event, ascending by start_datetime."""

    @abstractmethod
    def get(self, event_id: str) -> Optional[EventEntity]:
        """Return an event by id, or None if not found."""

    @abstractmethod
    def upsert(self, records: Sequence[Mapping[str, Any]]) -> List[EventEntity]:
        """Insert or replace rows keyed on id. Return the stored rows."""

    @abstractmethod
    def update(self, event_id: str, fields: Mapping[str, Any]) -> Optional[EventEntity]:
        """Write only the given fields of an existing row. Return it, or None if not found."""

    @abstractmethod
    def delete(self, event_id: str) -> Optional[EventEntity]:
        """Remove a row. Return its prior state, or None if not found."""


def _sort_key(event: EventEntity) -> datetime:
    return event["start_datetime"]


class InMemoryRepository(EventRepository):
    """
    Thread-safe in-memory repository suitable for testing and local development.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, EventEntity] = {}

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def list_from(self, start: datetime) -> List[EventEntity]:
        with self._lock:
            items = [e for e in self._items.values() if e["start_datetime"] >= start]
            return [e.copy() for e in sorted(items, key=_sort_key)]

    def list_all(self) -> List[EventEntity]:
        with self._lock:
            return [e.copy() for e in sorted(self._items.values(), key=_sort_key)]

    def get(self, event_id: str) -> Optional[EventEntity]:
        with self._lock:
            item = self._items.get(event_id)
            return None if item is None else item.copy()

    def upsert(self, records: Sequence[Mapping[str, Any]]) -> List[EventEntity]:
        stored: List[EventEntity] = []
        with self._lock:
            for record in records:
                existing = self._items.get(record["id"])
                entity: EventEntity = {field: record.get(field) for field in EVENT_FIELDS}  # type: ignore[assignment]
                # created_at belongs to the first insert
                entity["created_at"] = existing["created_at"] if existing else self._now()
                self._items[entity["id"]] = entity
                stored.append(entity.copy())
        return stored

    def update(self, event_id: str, fields: Mapping[str, Any]) -> Optional[EventEntity]:
        with self._lock:
            existing = self._items.get(event_id)
            if existing is None:
                return None

            updated = existing.copy()
            for field, value in fields.items():
                if field in EVENT_FIELDS and field != "id":
                    updated[field] = value  # type: ignore[literal-required]
            self._items[event_id] = updated
            return updated.copy()

    def delete(self, event_id: str) -> Optional[EventEntity]:
        with self._lock:
            return self._items.pop(event_id, None)


_memory_repository = InMemoryRepository()


# PUBLIC_INTERFACE
def get_memory_repository() -> InMemoryRepository:
    """Process-wide repository used by the 'memory' persistence backend."""
    return _memory_repository
