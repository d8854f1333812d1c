from __future__ import annotations

import logging
from typing import FrozenSet, Optional

from fastapi import Request

from .errors import Unauthorized
from .settings import get_settings

logger = logging.getLogger(__name__)


def parse_allowlist(raw: Optional[str]) -> FrozenSet[str]:
    """Split a comma-separated allowlist, dropping blanks."""
    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


# PUBLIC_INTERFACE
def is_authorized(caller_id: Optional[str], allowlist: Optional[str]) -> bool:
    """
    Return True when the trimmed caller id is on the comma-separated allowlist.

    An unset allowlist or an absent/blank caller id is never authorized.
    """
    if not caller_id or not caller_id.strip():
        return False
    return caller_id.strip() in parse_allowlist(allowlist)


# PUBLIC_INTERFACE
async def require_admin(request: Request) -> str:
    """
    FastAPI dependency guarding mutating routes.

    Reads the caller id from the configured header and the allowlist from the
    environment on every call. Raises Unauthorized (401) before the route body
    runs, so a denied request never reaches the store.

    Usage:
        @router.post("/events", dependencies=[Depends(require_admin)])
    """
    settings = get_settings()
    caller_id = request.headers.get(settings.caller_id_header)

    if not is_authorized(caller_id, settings.admin_user_ids):
        logger.warning(
            f"Denied {request.method} {request.url.path} for caller {caller_id or '<anonymous>'}"
        )
        raise Unauthorized()

    return caller_id.strip()  # type: ignore[union-attr]
