"""Repository over the managed store's REST table interface (PostgREST / Supabase)."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests
from fastapi.encoders import jsonable_encoder

from .errors import StoreError
from .models import EventEntity
from .repositories import EventRepository
from .schemas import parse_timestamp

logger = logging.getLogger(__name__)

TABLE = "events"
_RETURN_ROWS = "return=representation"
_UPSERT = "resolution=merge-duplicates,return=representation"


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    # Postgres trims trailing zeros from fractional seconds
    return parse_timestamp(value)


def _row_to_entity(row: Mapping[str, Any]) -> EventEntity:
    return {
        "id": str(row["id"]),
        "title": row["title"],
        "description": row.get("description"),
        "start_datetime": _parse_dt(row["start_datetime"]),  # type: ignore[typeddict-item]
        "end_datetime": _parse_dt(row.get("end_datetime")),
        "event_type": row["event_type"],
        "game_tags": row.get("game_tags"),
        "entry_fee": row.get("entry_fee"),
        "registration_link": row.get("registration_link"),
        "image_url": row.get("image_url"),
        "created_at": _parse_dt(row.get("created_at")),
    }


def _error_message(response: requests.Response) -> str:
    """The store's own message for a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text or f"{response.status_code} {response.reason}"


class PostgrestRepository(EventRepository):
    """
    Talks to ``{url}/rest/v1/events`` authenticated with one credential.

    The credential decides what the store lets this repository do; the caller
    picks it through the gateway's trust level.
    """

    def __init__(
        self,
        url: str,
        key: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{TABLE}"
        self.timeout = timeout
        # Injected for tests; otherwise each call uses requests.request, which closes its session
        self._session = session
        self._headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        params: Dict[str, str],
        prefer: Optional[str] = None,
        json: Any = None,
    ) -> List[EventEntity]:
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            response = (self._session or requests).request(
                method,
                self.endpoint,
                params=params,
                headers=headers,
                json=jsonable_encoder(json) if json is not None else None,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Store request {method} {self.endpoint} failed: {e}")
            raise StoreError(str(e)) from e

        if not response.ok:
            message = _error_message(response)
            logger.error(f"Store rejected {method} {self.endpoint}: {message}")
            raise StoreError(message)

        try:
            rows = response.json() if response.content else []
            return [_row_to_entity(row) for row in rows]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Store returned an unreadable row for {method} {self.endpoint}: {e}")
            raise StoreError(f"Unreadable response from store: {e}") from e

    def list_from(self, start: datetime) -> List[EventEntity]:
        return self._request(
            "GET",
            {
                "select": "*",
                "start_datetime": f"gte.{start.isoformat()}",
                "order": "start_datetime.asc",
            },
        )

    def list_all(self) -> List[EventEntity]:
        return self._request("GET", {"select": "*", "order": "start_datetime.asc"})

    def get(self, event_id: str) -> Optional[EventEntity]:
        rows = self._request("GET", {"select": "*", "id": f"eq.{event_id}"})
        return rows[0] if rows else None

    def upsert(self, records: Sequence[Mapping[str, Any]]) -> List[EventEntity]:
        return self._request(
            "POST",
            {"on_conflict": "id"},
            prefer=_UPSERT,
            json=[dict(r) for r in records],
        )

    def update(self, event_id: str, fields: Mapping[str, Any]) -> Optional[EventEntity]:
        if not fields:
            # Nothing to write; report the row as it stands
            return self.get(event_id)
        rows = self._request(
            "PATCH", {"id": f"eq.{event_id}"}, prefer=_RETURN_ROWS, json=dict(fields)
        )
        return rows[0] if rows else None

    def delete(self, event_id: str) -> Optional[EventEntity]:
        rows = self._request("DELETE", {"id": f"eq.{event_id}"}, prefer=_RETURN_ROWS)
        return rows[0] if rows else None
