from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol


class Storage(Protocol):
    """Persistence contract shared by the in-memory and relational stores.

    Every method returns fresh dicts, so callers may mutate results freely
    without touching stored state.
    """

    def create_user(self, username: str, display_name: str = "") -> dict[str, Any]: ...

    def get_user(self, user_id: int) -> dict[str, Any] | None: ...

    def get_user_by_username(self, username: str) -> dict[str, Any] | None: ...

    def get_all_users(self) -> list[dict[str, Any]]: ...

    def create_session(self, session: dict[str, Any]) -> dict[str, Any]: ...

    def get_session(self, session_id: int) -> dict[str, Any] | None: ...

    def get_all_sessions(self) -> list[dict[str, Any]]: ...

    def get_upcoming_sessions(self, now: datetime | None = None) -> list[dict[str, Any]]: ...

    def get_sessions_by_host(self, host_id: int) -> list[dict[str, Any]]: ...

    def get_sessions_by_participant(self, user_id: int) -> list[dict[str, Any]]: ...

    def get_session_participants(self, session_id: int) -> list[dict[str, Any]]: ...

    def add_session_participant(
        self, session_id: int, user_id: int, is_host: bool = False
    ) -> dict[str, Any]: ...

    def remove_session_participant(self, session_id: int, user_id: int) -> None: ...

    def get_user_availability(self, user_id: int) -> dict[str, Any] | None: ...

    def update_user_availability(self, availability: dict[str, Any]) -> dict[str, Any]: ...

    def ping(self) -> bool: ...
