from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, Optional

from .postgrest import PostgrestRepository
from .repositories import EventRepository, get_memory_repository
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[str, str], EventRepository]


# PUBLIC_INTERFACE
class TrustLevel(str, Enum):
    """Which credential a store handle is opened with."""

    RESTRICTED = "restricted"
    ELEVATED = "elevated"


@dataclass(frozen=True)
class StoreConfig:
    """Endpoint and credentials resolved at startup or per request."""

    url: Optional[str] = None
    restricted_key: Optional[str] = None
    elevated_key: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreConfig":
        return cls(
            url=settings.store_url,
            restricted_key=settings.restricted_key,
            elevated_key=settings.elevated_key,
        )

    def key_for(self, level: TrustLevel) -> Optional[str]:
        if level is TrustLevel.ELEVATED:
            return self.elevated_key
        return self.restricted_key


# PUBLIC_INTERFACE
class Gateway:
    """
    Hands out repositories bound to a trust level.

    ``acquire`` returns None when the endpoint or the matching credential is
    missing; callers treat that as a configuration failure.
    """

    def __init__(self, config: StoreConfig, factory: RepositoryFactory) -> None:
        self.config = config
        self._factory = factory

    def acquire(self, level: TrustLevel) -> Optional[EventRepository]:
        key = self.config.key_for(level)
        if not self.config.url or not key:
            logger.error(f"No store endpoint or {level.value} credential configured")
            return None
        return self._factory(self.config.url, key)


def _memory_factory(url: str, key: str) -> EventRepository:
    return get_memory_repository()


# PUBLIC_INTERFACE
def build_gateway(settings: Settings) -> Gateway:
    """Gateway for the configured persistence backend."""
    if settings.persistence_backend == "memory":
        factory: RepositoryFactory = _memory_factory
    else:
        factory = partial(PostgrestRepository, timeout=settings.store_timeout)
    return Gateway(StoreConfig.from_settings(settings), factory)


# PUBLIC_INTERFACE
def get_gateway() -> Gateway:
    """FastAPI dependency: a gateway built from the current environment."""
    return build_gateway(get_settings())
