"""Narrowing an already-fetched list of events for display.

Pure functions: no store access, no clock reads. The caller supplies "now".
"""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, TypeVar

from .schemas import parse_timestamp

ALL = "all"

E = TypeVar("E", bound=Mapping[str, Any])


class DateWindow(str, Enum):
    ALL = "all"
    NEXT_7_DAYS = "next7"
    NEXT_30_DAYS = "next30"

    @property
    def span(self) -> Optional[timedelta]:
        return _WINDOW_SPANS.get(self)


_WINDOW_SPANS = {
    DateWindow.NEXT_7_DAYS: timedelta(days=7),
    DateWindow.NEXT_30_DAYS: timedelta(days=30),
}


@dataclass(frozen=True)
class EventFilter:
    """
    Display filters, combined with AND.

    The default instance disables everything and keeps every event.
    """

    search_text: Optional[str] = None
    game_tag: str = ALL
    event_type: str = ALL
    date_window: DateWindow = DateWindow.ALL


def _fold(text: str) -> str:
    # "Pokémon" must match "pokemon"
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _as_datetime(value: Any) -> datetime:
    # Offset-less values are UTC, as on write
    return parse_timestamp(value)


def _matches(event: Mapping[str, Any], f: EventFilter, needle: str, now: datetime) -> bool:
    if needle:
        haystack = f"{event.get('title') or ''} {event.get('description') or ''}"
        if needle not in _fold(haystack):
            return False

    if f.game_tag != ALL and f.game_tag not in (event.get("game_tags") or []):
        return False

    if f.event_type != ALL and event.get("event_type") != f.event_type:
        return False

    span = f.date_window.span
    if span is not None:
        start = _as_datetime(event["start_datetime"])
        if start < now or start > now + span:
            return False

    return True


# PUBLIC_INTERFACE
def filter_events(events: Sequence[E], f: EventFilter, now: datetime) -> List[E]:
    """
    Return the events that pass every active filter, in their original order.

    Args:
        events: Rows with at least title, description, game_tags, event_type
            and start_datetime (datetime or ISO8601 string).
        f: Filter configuration.
        now: Reference time for the date window.
    """
    needle = _fold(f.search_text.strip()) if f.search_text else ""
    return [e for e in events if _matches(e, f, needle, now)]


# PUBLIC_INTERFACE
def game_tag_options(events: Iterable[Mapping[str, Any]]) -> List[str]:
    """Sorted distinct game tags across the given events."""
    tags = {tag for e in events for tag in (e.get("game_tags") or [])}
    return sorted(tags)
