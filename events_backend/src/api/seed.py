"""
Load sample events into the store.

Start times are computed from the current local time so the calendar always
has upcoming entries. Records carry fixed ids, so running the loader again
replaces them instead of adding duplicates.

Usage:
    python -m src.api.seed            # upsert with the elevated credential
    python -m src.api.seed --dry-run  # print the records only
"""
from __future__ import annotations

import argparse
import calendar
import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from .errors import EventsError
from .events import seed_events
from .gateway import build_gateway
from .logging_config import setup_logging
from .settings import get_settings

logger = logging.getLogger(__name__)


def next_weekday(now: datetime, weekday: int, hour: int, minute: int) -> datetime:
    """Next occurrence of weekday at hour:minute strictly after now (local wall clock of now)."""
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    delta = (weekday - now.weekday()) % 7
    if delta == 0 and target <= now:
        delta = 7
    return target + timedelta(days=delta)


def days_from_now(now: datetime, days: int, hour: int, minute: int) -> datetime:
    return (now + timedelta(days=days)).replace(hour=hour, minute=minute, second=0, microsecond=0)


def _event(
    event_id: str,
    title: str,
    description: str,
    start: datetime,
    end: datetime,
    event_type: str,
    game: str,
    entry_fee: str,
    registration_link: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "id": event_id,
        "title": title,
        "description": description,
        "start_datetime": start.astimezone(timezone.utc),
        "end_datetime": end.astimezone(timezone.utc),
        "event_type": event_type,
        "game_tags": [game],
        "entry_fee": entry_fee,
        "registration_link": registration_link,
        "image_url": None,
    }


# PUBLIC_INTERFACE
def sample_events(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """The store's standing weekly nights plus one pre-release and one tournament."""
    now = now or datetime.now().astimezone()
    mtg = "Magic: The Gathering"
    pokemon = "Pokémon TCG"
    return [
        _event(
            "weekly-fnm-standard",
            "Friday Night Magic – Standard",
            "Weekly Standard format. Friendly pods, new players welcome. Prize packs for top finishers.",
            next_weekday(now, calendar.FRIDAY, 19, 0),
            next_weekday(now, calendar.FRIDAY, 22, 0),
            "weekly",
            mtg,
            "$10",
        ),
        _event(
            "weekly-commander",
            "Commander Casual Night",
            "Low-pressure Commander pods. Bring a deck or borrow a shop precon. Focus on inclusive play.",
            next_weekday(now, calendar.WEDNESDAY, 18, 30),
            next_weekday(now, calendar.WEDNESDAY, 21, 30),
            "weekly",
            mtg,
            "$5",
        ),
        _event(
            "pokemon-league",
            "Pokémon League Night",
            "Weekly Pokémon TCG play. Great for juniors and casual play. Bring a standard-legal deck.",
            next_weekday(now, calendar.SATURDAY, 13, 0),
            next_weekday(now, calendar.SATURDAY, 15, 0),
            "weekly",
            pokemon,
            "$5",
        ),
        _event(
            "oneoff-mtg-pre-release",
            "MTG Pre-release: Emberfall",
            "Sealed deck pre-release for the Emberfall set. 4 rounds, prize support for all participants.",
            days_from_now(now, 7, 18, 30),
            days_from_now(now, 7, 22, 0),
            "one-time",
            mtg,
            "$35",
            "https://example.com/register/emberfall-pre",
        ),
        _event(
            "tournament-pkmn",
            "Pokémon Store Championship",
            "Swiss rounds with cut to top 8. Bring a standard-legal deck and decklist. Judges on site.",
            days_from_now(now, 14, 12, 0),
            days_from_now(now, 14, 17, 0),
            "tournament",
            pokemon,
            "$20",
            "https://example.com/register/pkmn-champs",
        ),
    ]


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Upsert sample events into the event store.")
    parser.add_argument("--dry-run", action="store_true", help="print the records without writing them")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level)
    records = sample_events()

    if args.dry_run:
        print(json.dumps(records, indent=2, ensure_ascii=False, default=str))
        return 0

    try:
        stored = seed_events(build_gateway(settings), records)
    except EventsError as e:
        logger.error(f"Seed failed: {e.message}")
        return 1

    logger.info(f"Seeded {len(stored)} events.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
