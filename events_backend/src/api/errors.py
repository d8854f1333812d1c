"""Error taxonomy for event access operations.

Every error is terminal for the request that raised it. The HTTP layer renders
them as ``{"error": message}`` with the class's status code.
"""
from __future__ import annotations

from typing import Optional


class EventsError(Exception):
    """Base class; carries the HTTP status and the user-visible message."""

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(EventsError):
    """The gateway could not resolve a store endpoint or credential."""

    status_code = 500
    default_message = (
        "Event store not configured. Ensure SUPABASE_URL and the matching key are set."
    )


class Unauthorized(EventsError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(EventsError):
    status_code = 404
    default_message = "Event not found"


class StoreError(EventsError):
    """Failure reported by the store; the message is passed through verbatim."""

    status_code = 500
