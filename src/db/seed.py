from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, tzinfo
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from src.storage.base import Storage
from src.utils.timestamps import require_timestamp, utc_now

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_DATA: dict[str, Any] = {
    "users": [
        {"username": "dungeonmaster", "display_name": "Dana the DM"},
        {"username": "meeple", "display_name": "Morgan"},
        {"username": "rookie", "display_name": "Riley"},
    ],
    "sessions": [
        {
            "title": "Catan Friday",
            "game_name": "Catan",
            "game_type": "board",
            "host": "meeple",
            "location": "The Dice Tower Cafe",
            "days_from_now": 2,
            "hour": 19,
            "duration_hours": 3,
            "min_players": 3,
            "max_players": 4,
        },
        {
            "title": "Saturday Morning One-Shot",
            "game_name": "Dungeons & Dragons 5e",
            "game_type": "rpg",
            "host": "dungeonmaster",
            "location": "Community Library, Room B",
            "days_from_now": 4,
            "hour": 10,
            "duration_hours": 4,
            "min_players": 3,
            "max_players": 6,
            "experience_level": "beginner",
        },
    ],
    "availability": [
        {"username": "rookie", "weekend_morning": True, "weekday_evening": True},
    ],
}


@dataclass(frozen=True)
class SampleData:
    users: list[dict[str, Any]] = field(default_factory=list)
    sessions: list[dict[str, Any]] = field(default_factory=list)
    availability: list[dict[str, Any]] = field(default_factory=list)


def _coerce_list(payload: dict[str, Any], key: str) -> list[dict[str, Any]]:
    items = payload.get(key, [])
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def load_sample_data(config_path: str) -> SampleData:
    path = Path(config_path)
    payload: dict[str, Any]
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        payload = loaded if isinstance(loaded, dict) else {}
    else:
        logger.info("Sample data file %s not found; using built-in defaults", config_path)
        payload = DEFAULT_SAMPLE_DATA
    return SampleData(
        users=_coerce_list(payload, "users"),
        sessions=_coerce_list(payload, "sessions"),
        availability=_coerce_list(payload, "availability"),
    )


def _session_times(
    item: dict[str, Any], now: datetime, tz: tzinfo | None = None
) -> tuple[datetime, datetime]:
    # Sample hours are wall-clock hours in the display timezone.
    local_now = now.astimezone(tz or UTC)
    day = (local_now + timedelta(days=int(item.get("days_from_now", 1)))).replace(
        hour=int(item.get("hour", 18)), minute=0, second=0, microsecond=0
    )
    start = day.astimezone(UTC)
    return start, start + timedelta(hours=float(item.get("duration_hours", 3)))


def seed_sample_data_if_empty(
    store: Storage,
    config_path: str,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> bool:
    if store.get_all_users() or store.get_all_sessions():
        return False
    now = require_timestamp(now or utc_now(), "now")
    data = load_sample_data(config_path)
    user_ids: dict[str, int] = {}
    for item in data.users:
        user = store.create_user(str(item["username"]), str(item.get("display_name", "")))
        user_ids[user["username"]] = int(user["id"])
    for item in data.sessions:
        host_id = user_ids.get(str(item.get("host", "")).lower())
        if host_id is None:
            logger.warning("Skipping sample session %r with unknown host", item.get("title"))
            continue
        start, end = _session_times(item, now, tz)
        store.create_session(
            {
                "title": item["title"],
                "description": item.get("description", ""),
                "game_name": item["game_name"],
                "game_type": item.get("game_type", "board"),
                "host_id": host_id,
                "location": item["location"],
                "start_time": start,
                "end_time": end,
                "min_players": int(item.get("min_players", 2)),
                "max_players": int(item.get("max_players", 4)),
                "experience_level": item.get("experience_level", "beginner"),
            }
        )
    for item in data.availability:
        user_id = user_ids.get(str(item.get("username", "")).lower())
        if user_id is None:
            continue
        store.update_user_availability({**item, "user_id": user_id})
    logger.info(
        "Seeded %d users and %d sessions from sample data", len(user_ids), len(data.sessions)
    )
    return True
