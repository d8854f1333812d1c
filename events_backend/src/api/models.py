from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional, TypedDict

EVENT_FIELDS = (
    "id",
    "title",
    "description",
    "start_datetime",
    "end_datetime",
    "event_type",
    "game_tags",
    "entry_fee",
    "registration_link",
    "image_url",
)


# PUBLIC_INTERFACE
class EventType(str, Enum):
    WEEKLY = "weekly"
    ONE_TIME = "one-time"
    TOURNAMENT = "tournament"


# PUBLIC_INTERFACE
class EventEntity(TypedDict):
    """
    A row of the ``events`` table as returned by any repository.

    Fields:
    - id: Natural key; caller-supplied or generated on create
    - title: Non-empty display title
    - description: Optional long text
    - start_datetime: Aware UTC start; primary sort and filter key
    - end_datetime: Optional aware UTC end (not checked against start)
    - event_type: One of EventType's values
    - game_tags: Tags for filtering/display, or None
    - entry_fee: Free-form price text such as "$10"
    - registration_link: Optional URL
    - image_url: Optional image location
    - created_at: Set by the store on insert
    """

    id: str
    title: str
    description: Optional[str]
    start_datetime: datetime
    end_datetime: Optional[datetime]
    event_type: str
    game_tags: Optional[List[str]]
    entry_fee: Optional[str]
    registration_link: Optional[str]
    image_url: Optional[str]
    created_at: Optional[datetime]
