from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

from dotenv import load_dotenv

# Local development reads a .env file; deployed environments set variables directly.
load_dotenv()

STORE_URL_VARS = ("SUPABASE_URL", "EVENTS_STORE_URL")
RESTRICTED_KEY_VARS = ("SUPABASE_ANON_KEY", "SUPABASE_PUBLISHABLE_KEY")
ELEVATED_KEY_VARS = ("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SECRET_KEY")


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'rest' (default, managed store) or 'memory'
    - SUPABASE_URL / EVENTS_STORE_URL: store endpoint
    - SUPABASE_ANON_KEY / SUPABASE_PUBLISHABLE_KEY: restricted credential
    - SUPABASE_SERVICE_ROLE_KEY / SUPABASE_SECRET_KEY: elevated credential
    - STORE_TIMEOUT_SECONDS: per-request store timeout (default: 10)
    - ADMIN_USER_IDS: comma-separated caller ids allowed to mutate events
    - CALLER_ID_HEADER: header carrying the signed-in caller id (default: X-User-Id)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level (default: INFO)

    For the store variables the first one present in the environment wins.
    """

    persistence_backend: str
    store_url: Optional[str]
    restricted_key: Optional[str]
    elevated_key: Optional[str]
    store_timeout: float
    admin_user_ids: Optional[str]
    caller_id_header: str
    cors_allow_origins: List[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _first_defined(names: Sequence[str]) -> Optional[str]:
    """Return the value of the first variable present in the environment, empty counting as unset."""
    for name in names:
        if name in os.environ:
            return os.environ[name].strip() or None
    return None


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "rest").strip().lower()
    if backend not in {"rest", "memory"}:
        backend = "rest"

    return Settings(
        persistence_backend=backend,
        store_url=_first_defined(STORE_URL_VARS),
        restricted_key=_first_defined(RESTRICTED_KEY_VARS),
        elevated_key=_first_defined(ELEVATED_KEY_VARS),
        store_timeout=_parse_float(_get_env("STORE_TIMEOUT_SECONDS", "10"), 10.0),
        admin_user_ids=os.getenv("ADMIN_USER_IDS"),
        caller_id_header=_get_env("CALLER_ID_HEADER", "X-User-Id").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
