from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.db.sqlite_client import AVAILABILITY_FLAGS
from src.storage.base import Storage

DAY_CLASSES = ("weekday", "weekend")
TIMES_OF_DAY = ("morning", "afternoon", "evening")
MAX_NOTES_LENGTH = 500


@dataclass(frozen=True)
class WeeklyAvailability:
    user_id: int
    weekday_morning: bool = False
    weekday_afternoon: bool = False
    weekday_evening: bool = False
    weekend_morning: bool = False
    weekend_afternoon: bool = False
    weekend_evening: bool = False
    notes: str | None = None

    def is_available(self, day_class: str, time_of_day: str) -> bool:
        if day_class not in DAY_CLASSES or time_of_day not in TIMES_OF_DAY:
            raise ValueError(f"Unknown availability bucket: {day_class}/{time_of_day}")
        return bool(getattr(self, f"{day_class}_{time_of_day}"))

    def to_payload(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            **{flag: getattr(self, flag) for flag in AVAILABILITY_FLAGS},
            "notes": self.notes,
        }


def load_availability(payload: dict[str, Any]) -> WeeklyAvailability:
    notes = str(payload.get("notes") or "").strip()
    return WeeklyAvailability(
        user_id=int(payload["user_id"]),
        **{flag: bool(payload.get(flag)) for flag in AVAILABILITY_FLAGS},
        notes=notes or None,
    )


def validate_availability_payload(payload: dict[str, Any]) -> str | None:
    user_id = payload.get("user_id")
    if user_id is None or str(user_id).strip() == "":
        return "user_id is required."
    try:
        int(user_id)
    except (TypeError, ValueError):
        return "user_id must be an integer."
    notes = payload.get("notes")
    if notes is not None and len(str(notes)) > MAX_NOTES_LENGTH:
        return f"Notes must be at most {MAX_NOTES_LENGTH} characters."
    for flag in AVAILABILITY_FLAGS:
        value = payload.get(flag)
        # bool is an int subclass, so 0/1 and True/False both pass.
        if value is not None and (not isinstance(value, int) or value not in (0, 1)):
            return f"{flag} must be true or false."
    return None


def set_user_availability(store: Storage, payload: dict[str, Any]) -> dict[str, Any]:
    error = validate_availability_payload(payload)
    if error:
        raise ValueError(error)
    availability = load_availability(payload)
    if store.get_user(availability.user_id) is None:
        raise ValueError("User not found.")
    return store.update_user_availability(availability.to_payload())


def get_user_availability(store: Storage, user_id: int) -> WeeklyAvailability | None:
    row = store.get_user_availability(user_id)
    return load_availability(row) if row else None
