from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .. import events as operations
from ..auth import require_admin
from ..filters import ALL, DateWindow, EventFilter
from ..gateway import Gateway, get_gateway
from ..models import EventType
from ..schemas import EventCreate, EventOut, EventUpdate

router = APIRouter(tags=["events"])

_ERRORS = {
    401: {"description": "Caller is not on the admin allowlist"},
    404: {"description": "Event not found"},
    500: {"description": "Store not configured or store error"},
}
_EVENT_TYPES = {t.value for t in EventType}


# PUBLIC_INTERFACE
@router.get(
    "/events",
    response_model=List[EventOut],
    summary="List upcoming events",
    description=(
        "Events starting now or later, ascending by start time.\n\n"
        "Optional display filters (all combine with AND):\n"
        "- q: case-insensitive text search over title and description\n"
        "- game: exact game tag, or 'all'\n"
        "- type: weekly, one-time, tournament, or 'all'\n"
        "- window: all, next7, next30"
    ),
    responses={500: _ERRORS[500]},
)
def list_events(
    q: Optional[str] = Query(None, description="Search text for title/description"),
    game: str = Query(ALL, description="Game tag to match"),
    event_type: str = Query(ALL, alias="type", description="Event type to match"),
    window: DateWindow = Query(DateWindow.ALL, description="Date window from now"),
    gateway: Gateway = Depends(get_gateway),
) -> List[EventOut]:
    if event_type != ALL and event_type not in _EVENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"type must be 'all' or one of: {', '.join(sorted(_EVENT_TYPES))}",
        )
    event_filter = EventFilter(search_text=q, game_tag=game, event_type=event_type, date_window=window)
    events = operations.list_upcoming(gateway, event_filter)
    return [EventOut(**e) for e in events]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/events/{event_id}",
    response_model=EventOut,
    summary="Get event",
    responses={404: _ERRORS[404], 500: _ERRORS[500]},
)
def get_event(event_id: str, gateway: Gateway = Depends(get_gateway)) -> EventOut:
    return EventOut(**operations.get_event(gateway, event_id))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "/events",
    response_model=EventOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
    description=(
        "Create an event, generating an id when none is given. "
        "An existing event with the same id is replaced."
    ),
    dependencies=[Depends(require_admin)],
    responses={401: _ERRORS[401], 500: _ERRORS[500]},
)
def create_event(payload: EventCreate, gateway: Gateway = Depends(get_gateway)) -> EventOut:
    return EventOut(**operations.create_event(gateway, payload))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/events/{event_id}",
    response_model=EventOut,
    summary="Update event",
    description="Replace only the fields present in the body.",
    dependencies=[Depends(require_admin)],
    responses=_ERRORS,
)
def update_event(
    event_id: str, payload: EventUpdate, gateway: Gateway = Depends(get_gateway)
) -> EventOut:
    return EventOut(**operations.update_event(gateway, event_id, payload))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/events/{event_id}",
    response_model=EventOut,
    summary="Delete event",
    description="Delete an event and return it as it was before deletion.",
    dependencies=[Depends(require_admin)],
    responses=_ERRORS,
)
def delete_event(event_id: str, gateway: Gateway = Depends(get_gateway)) -> EventOut:
    return EventOut(**operations.delete_event(gateway, event_id))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/admin/events",
    response_model=List[EventOut],
    summary="List all events (admin)",
    description="Every event including past ones, ascending by start time.",
    dependencies=[Depends(require_admin)],
    responses={401: _ERRORS[401], 500: _ERRORS[500]},
)
def list_all_events(gateway: Gateway = Depends(get_gateway)) -> List[EventOut]:
    return [EventOut(**e) for e in operations.list_all(gateway)]  # type: ignore[arg-type]
