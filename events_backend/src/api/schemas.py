from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .models import EventType

_NON_NULL_FIELDS = ("title", "start_datetime", "event_type")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a parsed timestamp to an aware UTC datetime.
    Naive values are taken to already be in UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


_TIMESTAMP = TypeAdapter(datetime)


# PUBLIC_INTERFACE
def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO8601 string (any fractional-second precision) or a datetime
    into an aware UTC datetime, the same way request bodies are parsed.
    """
    return _as_utc(_TIMESTAMP.validate_python(value))  # type: ignore[return-value]


def _clean_title(value: str) -> str:
    s = value.strip()
    if not s:
        raise ValueError("title must not be empty")
    return s


# PUBLIC_INTERFACE
class EventCreate(BaseModel):
    """
    Schema for creating (or replacing, when ``id`` matches an existing row) an event.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "weekly-fnm-standard",
                "title": "Friday Night Magic - Standard",
                "description": "Weekly Standard format. New players welcome.",
                "start_datetime": "2026-10-23T23:00:00Z",
                "end_datetime": "2026-10-24T02:00:00Z",
                "event_type": "weekly",
                "game_tags": ["Magic: The Gathering"],
                "entry_fee": "$10",
            }
        }
    )

    id: Optional[str] = Field(default=None, min_length=1, description="Identifier; generated when omitted")
    title: str = Field(..., description="Display title")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    start_datetime: datetime = Field(..., description="Start time, ISO8601")
    end_datetime: Optional[datetime] = Field(default=None, description="Optional end time, ISO8601")
    event_type: EventType = Field(..., description="weekly, one-time or tournament")
    game_tags: Optional[List[str]] = Field(default=None, description="Games this event is for")
    entry_fee: Optional[str] = Field(default=None, description="Free-form entry fee, e.g. '$10'")
    registration_link: Optional[str] = Field(default=None, description="Registration URL")
    image_url: Optional[str] = Field(default=None, description="Image location")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Strip whitespace and require a non-empty title."""
        return _clean_title(v)

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    def to_record(self, event_id: str) -> Dict[str, Any]:
        """Full row for the store, every contract field present."""
        record = self.model_dump()
        record["id"] = event_id
        record["event_type"] = self.event_type.value
        return record


# PUBLIC_INTERFACE
class EventUpdate(BaseModel):
    """
    Schema for updating an existing event.
    All fields are optional; only fields present in the request body are written.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Friday Night Magic - Pioneer",
                "entry_fee": "$12",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Display title")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    start_datetime: Optional[datetime] = Field(default=None, description="Start time, ISO8601")
    end_datetime: Optional[datetime] = Field(default=None, description="Optional end time, ISO8601")
    event_type: Optional[EventType] = Field(default=None, description="weekly, one-time or tournament")
    game_tags: Optional[List[str]] = Field(default=None, description="Games this event is for")
    entry_fee: Optional[str] = Field(default=None, description="Free-form entry fee")
    registration_link: Optional[str] = Field(default=None, description="Registration URL")
    image_url: Optional[str] = Field(default=None, description="Image location")

    @field_validator(*_NON_NULL_FIELDS)
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        # Defaults are not validated, so this only fires for an explicit null
        if v is None:
            raise ValueError("field cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    def to_fields(self) -> Dict[str, Any]:
        """Only the fields the caller supplied."""
        fields = self.model_dump(exclude_unset=True)
        if "event_type" in fields:
            fields["event_type"] = fields["event_type"].value
        return fields


# PUBLIC_INTERFACE
class EventOut(BaseModel):
    """
    Schema returned by the API for an event.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "pokemon-league",
                "title": "Pokémon League Night",
                "description": "Weekly Pokémon TCG play.",
                "start_datetime": "2026-10-24T18:00:00Z",
                "end_datetime": "2026-10-24T20:00:00Z",
                "event_type": "weekly",
                "game_tags": ["Pokémon TCG"],
                "entry_fee": "$5",
                "registration_link": None,
                "image_url": None,
                "created_at": "2026-10-19T09:00:00Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the event")
    title: str
    description: Optional[str] = None
    start_datetime: datetime
    end_datetime: Optional[datetime] = None
    event_type: EventType
    game_tags: Optional[List[str]] = None
    entry_fee: Optional[str] = None
    registration_link: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, description="Set by the store on insert")

    @field_validator("start_datetime", "end_datetime", "created_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)
