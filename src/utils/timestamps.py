from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, cast

from dateutil import parser as date_parser


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce a datetime or ISO-8601 string into an aware datetime.

    Naive values are taken to be UTC, matching how timestamps are stored.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        if not value.strip():
            return None
        parsed = cast(datetime, date_parser.isoparse(value.strip()))
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    raise TypeError(f"Unsupported timestamp value: {value!r}")


def require_timestamp(value: Any, field_name: str = "timestamp") -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"{field_name} is required.")
    return parsed


def to_storage_text(value: Any) -> str:
    return require_timestamp(value).astimezone(UTC).isoformat(timespec="seconds")


def utc_now() -> datetime:
    return datetime.now(UTC)
