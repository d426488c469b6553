from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from src.storage.base import Storage
from src.utils.timestamps import parse_timestamp, require_timestamp, utc_now

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
MAX_PLAYERS_LIMIT = 20
EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced")
RECURRENCE_OPTIONS = ("once", "weekly", "biweekly", "monthly")
GAME_TYPES = ("board", "card", "rpg", "miniature", "party")


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def validate_session_payload(payload: dict[str, Any]) -> str | None:
    title = " ".join(str(payload.get("title") or "").split())
    if not title:
        return "Title is required."
    if len(title) > MAX_TITLE_LENGTH:
        return f"Title must be at most {MAX_TITLE_LENGTH} characters."
    if not str(payload.get("game_name") or "").strip():
        return "Game name is required."
    if not str(payload.get("location") or "").strip():
        return "Location is required."
    if _as_int(payload.get("host_id")) is None:
        return "Host is required."
    game_type = payload.get("game_type") or "board"
    if game_type not in GAME_TYPES:
        return "Game type must be one of: " + ", ".join(GAME_TYPES)
    try:
        start = parse_timestamp(payload.get("start_time"))
        end = parse_timestamp(payload.get("end_time"))
    except (TypeError, ValueError):
        return "Start and end times must be valid timestamps."
    if start is None or end is None:
        return "Start and end times are required."
    if start >= end:
        return "Session must end after it starts."
    min_players = _as_int(payload.get("min_players"))
    max_players = _as_int(payload.get("max_players"))
    if min_players is None or max_players is None:
        return "Minimum and maximum player counts are required."
    if min_players < 1:
        return "Minimum players must be at least 1."
    if min_players > max_players:
        return "Minimum players cannot exceed maximum players."
    if max_players > MAX_PLAYERS_LIMIT:
        return f"Maximum players must be at most {MAX_PLAYERS_LIMIT}."
    if (payload.get("experience_level") or "beginner") not in EXPERIENCE_LEVELS:
        return "Experience level must be one of: " + ", ".join(EXPERIENCE_LEVELS)
    if (payload.get("recurring") or "once") not in RECURRENCE_OPTIONS:
        return "Recurrence must be one of: " + ", ".join(RECURRENCE_OPTIONS)
    return None


def spots_available(session: dict[str, Any]) -> int:
    return max(0, int(session["max_players"]) - int(session["current_players"]))


def is_session_full(session: dict[str, Any]) -> bool:
    return spots_available(session) == 0


def has_started(session: dict[str, Any], now: datetime | None = None) -> bool:
    start = require_timestamp(session["start_time"], "start_time")
    return start <= require_timestamp(now or utc_now(), "now")


def create_new_session(
    store: Storage, payload: dict[str, Any], now: datetime | None = None
) -> dict[str, Any]:
    error = validate_session_payload(payload)
    if error:
        raise ValueError(error)
    if has_started(payload, now):
        raise ValueError("Session must start in the future.")
    host_id = int(payload["host_id"])
    if store.get_user(host_id) is None:
        raise ValueError("Host not found.")
    session = store.create_session(
        {
            **payload,
            "title": " ".join(str(payload["title"]).split()),
            "game_name": str(payload["game_name"]).strip(),
            "location": str(payload["location"]).strip(),
            "host_id": host_id,
        }
    )
    logger.info("Session %s created by user %s", session["id"], host_id)
    return session


def join_session(
    store: Storage, session_id: int, user_id: int, now: datetime | None = None
) -> dict[str, Any]:
    session = store.get_session(session_id)
    if not session:
        raise ValueError("Session not found.")
    if store.get_user(user_id) is None:
        raise ValueError("User not found.")
    participants = store.get_session_participants(session_id)
    exists = next((p for p in participants if p["user_id"] == user_id), None)
    if exists:
        return exists
    if has_started(session, now):
        raise ValueError("Session has already started.")
    if is_session_full(session):
        raise ValueError("Session is full.")
    participant = store.add_session_participant(session_id, user_id)
    logger.info("User %s joined session %s", user_id, session_id)
    return participant


def leave_session(store: Storage, session_id: int, user_id: int) -> None:
    try:
        store.remove_session_participant(session_id, user_id)
    except LookupError as exc:
        raise ValueError("You are not a participant in this session.") from exc
    logger.info("User %s left session %s", user_id, session_id)


def get_session_url(base_url: str, session_id: int) -> str:
    return f"{base_url}?session={session_id}"
