from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import Any

from src.engine.availability import set_user_availability
from src.engine.matching import rank_sessions_for_user
from src.storage.base import Storage

logger = logging.getLogger(__name__)

Response = tuple[int, Any]


def to_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    return value


def match_sessions(
    store: Storage,
    user_id: int,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> Response:
    try:
        ranked = rank_sessions_for_user(store, user_id, now=now, tz=tz)
    except Exception:
        logger.exception("Error matching sessions for user %s", user_id)
        return 500, {"message": "Failed to match sessions"}
    return 200, to_json(ranked)


def get_availability(store: Storage, user_id: int) -> Response:
    try:
        availability = store.get_user_availability(user_id)
    except Exception:
        logger.exception("Error fetching availability for user %s", user_id)
        return 500, {"message": "Failed to fetch user availability"}
    if not availability:
        return 404, {"message": "Availability not found"}
    return 200, to_json(availability)


def update_availability(store: Storage, payload: dict[str, Any]) -> Response:
    try:
        stored = set_user_availability(store, payload)
    except ValueError as exc:
        return 400, {"message": str(exc)}
    except Exception:
        logger.exception("Error updating availability")
        return 500, {"message": "Failed to update availability"}
    return 200, to_json(stored)
