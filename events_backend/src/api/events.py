"""Event access operations.

Each operation opens a repository at its trust level through the gateway and
issues a single store call. Authorization is enforced by the HTTP layer
(``auth.require_admin``) before any of the mutating operations run.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence

from .errors import ConfigurationError, NotFound
from .filters import EventFilter, filter_events
from .gateway import Gateway, TrustLevel
from .models import EventEntity
from .repositories import EventRepository
from .schemas import EventCreate, EventUpdate

logger = logging.getLogger(__name__)


def _open(gateway: Gateway, level: TrustLevel) -> EventRepository:
    repo = gateway.acquire(level)
    if repo is None:
        raise ConfigurationError()
    return repo


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_event_id() -> str:
    return uuid.uuid4().hex


# PUBLIC_INTERFACE
def list_upcoming(
    gateway: Gateway,
    event_filter: Optional[EventFilter] = None,
    now: Optional[datetime] = None,
) -> List[EventEntity]:
    """
    Events starting at or after now, ascending by start.

    "Now" is taken once and shared by the store query and the optional
    display filter.
    """
    now = now or _utcnow()
    events = _open(gateway, TrustLevel.RESTRICTED).list_from(now)
    if event_filter is not None:
        events = filter_events(events, event_filter, now)
    return events


# PUBLIC_INTERFACE
def list_all(gateway: Gateway) -> List[EventEntity]:
    """Every event, past ones included, ascending by start."""
    return _open(gateway, TrustLevel.RESTRICTED).list_all()


# PUBLIC_INTERFACE
def get_event(gateway: Gateway, event_id: str) -> EventEntity:
    event = _open(gateway, TrustLevel.RESTRICTED).get(event_id)
    if event is None:
        raise NotFound()
    return event


# PUBLIC_INTERFACE
def create_event(gateway: Gateway, payload: EventCreate) -> EventEntity:
    """
    Insert or replace an event keyed on id, generating the id when absent.

    A supplied id that already exists replaces that row.
    """
    repo = _open(gateway, TrustLevel.ELEVATED)
    record = payload.to_record(payload.id or new_event_id())
    stored = repo.upsert([record])
    logger.info(f"Upserted event {record['id']}")
    return stored[0]


# PUBLIC_INTERFACE
def update_event(gateway: Gateway, event_id: str, payload: EventUpdate) -> EventEntity:
    """Write only the supplied fields; never creates a row."""
    repo = _open(gateway, TrustLevel.ELEVATED)
    fields = payload.to_fields()
    updated = repo.update(event_id, fields)
    if updated is None:
        raise NotFound()
    logger.info(f"Updated event {event_id} fields {sorted(fields)}")
    return updated


# PUBLIC_INTERFACE
def delete_event(gateway: Gateway, event_id: str) -> EventEntity:
    """Remove an event and return the row as it was."""
    deleted = _open(gateway, TrustLevel.ELEVATED).delete(event_id)
    if deleted is None:
        raise NotFound()
    logger.info(f"Deleted event {event_id}")
    return deleted


# PUBLIC_INTERFACE
def seed_events(gateway: Gateway, records: Sequence[Mapping[str, Any]]) -> List[EventEntity]:
    """Bulk upsert of complete records keyed on id."""
    stored = _open(gateway, TrustLevel.ELEVATED).upsert(records)
    logger.info(f"Seeded {len(stored)} events")
    return stored
