"""Rank upcoming sessions by how well they fit a user's weekly availability.

Each candidate gets an additive score:

* +3 when the user marked the session's (day class, time of day) bucket,
* up to +3 for open seats (``max_players - current_players``, clamped to 0..3),
* +2 when the session starts within the next seven days.

Users without a stored availability record get plain chronological order.
"""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from typing import Any

from src.engine.availability import WeeklyAvailability, get_user_availability
from src.storage.base import Storage
from src.utils.timestamps import require_timestamp, utc_now

TIME_FIT_POINTS = 3
CAPACITY_CAP = 3
NEAR_TERM_POINTS = 2
NEAR_TERM_WINDOW = timedelta(days=7)

AFTERNOON_START_HOUR = 12
EVENING_START_HOUR = 17


def classify_start_time(start: Any, tz: tzinfo | None = None) -> tuple[str, str]:
    local = require_timestamp(start, "start_time")
    if tz is not None:
        local = local.astimezone(tz)
    day_class = "weekend" if local.weekday() >= 5 else "weekday"
    if local.hour < AFTERNOON_START_HOUR:
        time_of_day = "morning"
    elif local.hour < EVENING_START_HOUR:
        time_of_day = "afternoon"
    else:
        time_of_day = "evening"
    return day_class, time_of_day


def _capacity_points(session: dict[str, Any]) -> int:
    spots = int(session.get("max_players") or 0) - int(session.get("current_players") or 0)
    return max(0, min(spots, CAPACITY_CAP))


def _near_term_points(start: datetime, now: datetime) -> int:
    return NEAR_TERM_POINTS if now < start < now + NEAR_TERM_WINDOW else 0


def score_breakdown(
    session: dict[str, Any],
    availability: WeeklyAvailability,
    now: datetime,
    tz: tzinfo | None = None,
) -> dict[str, Any]:
    start = require_timestamp(session["start_time"], "start_time")
    day_class, time_of_day = classify_start_time(start, tz)
    time_fit = TIME_FIT_POINTS if availability.is_available(day_class, time_of_day) else 0
    capacity = _capacity_points(session)
    near_term = _near_term_points(start, require_timestamp(now, "now"))
    return {
        "bucket": f"{day_class}_{time_of_day}",
        "time_fit": time_fit,
        "capacity": capacity,
        "near_term": near_term,
        "total": time_fit + capacity + near_term,
    }


def score_session(
    session: dict[str, Any],
    availability: WeeklyAvailability,
    now: datetime,
    tz: tzinfo | None = None,
) -> int:
    return int(score_breakdown(session, availability, now, tz)["total"])


def rank_sessions(
    availability: WeeklyAvailability | None,
    sessions: list[dict[str, Any]],
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[dict[str, Any]]:
    now = require_timestamp(now or utc_now(), "now")
    candidates = [s for s in sessions if require_timestamp(s["start_time"], "start_time") > now]
    chronological = sorted(
        candidates,
        key=lambda s: (require_timestamp(s["start_time"], "start_time"), s.get("id") or 0),
    )
    if availability is None:
        return chronological
    scores = [score_session(s, availability, now, tz) for s in chronological]
    order = sorted(range(len(chronological)), key=lambda i: -scores[i])
    return [chronological[i] for i in order]


def rank_sessions_for_user(
    store: Storage,
    user_id: int,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[dict[str, Any]]:
    now = require_timestamp(now or utc_now(), "now")
    availability = get_user_availability(store, user_id)
    sessions = store.get_upcoming_sessions(now)
    return rank_sessions(availability, sessions, now=now, tz=tz)
