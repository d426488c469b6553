from __future__ import annotations

import copy
import threading
from datetime import datetime
from typing import Any

from src.db.sqlite_client import AVAILABILITY_FLAGS, normalize_username
from src.utils.timestamps import require_timestamp, utc_now


class MemoryStorage:
    """Dict-backed storage used for demos, tests and single-process runs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[int, dict[str, Any]] = {}
        self._sessions: dict[int, dict[str, Any]] = {}
        self._participants: dict[int, dict[str, Any]] = {}
        self._availability: dict[int, dict[str, Any]] = {}
        self._user_ids = 1
        self._session_ids = 1
        self._participant_ids = 1
        self._availability_ids = 1

    def ping(self) -> bool:
        return True

    def create_user(self, username: str, display_name: str = "") -> dict[str, Any]:
        normalized = normalize_username(username)
        with self._lock:
            if any(user["username"] == normalized for user in self._users.values()):
                raise ValueError("Username is already taken.")
            user = {
                "id": self._user_ids,
                "username": normalized,
                "display_name": display_name.strip() or username.strip(),
                "created_at": utc_now(),
            }
            self._users[user["id"]] = user
            self._user_ids += 1
            return copy.deepcopy(user)

    def get_user(self, user_id: int) -> dict[str, Any] | None:
        with self._lock:
            user = self._users.get(user_id)
            return copy.deepcopy(user) if user else None

    def get_user_by_username(self, username: str) -> dict[str, Any] | None:
        normalized = normalize_username(username)
        with self._lock:
            user = next((u for u in self._users.values() if u["username"] == normalized), None)
            return copy.deepcopy(user) if user else None

    def get_all_users(self) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(user) for _, user in sorted(self._users.items())]

    def create_session(self, session: dict[str, Any]) -> dict[str, Any]:
        now = utc_now()
        with self._lock:
            stored = {
                "id": self._session_ids,
                "title": session["title"],
                "description": session.get("description") or "",
                "game_name": session["game_name"],
                "game_type": session.get("game_type") or "board",
                "host_id": int(session["host_id"]),
                "location": session["location"],
                "address": session.get("address"),
                "start_time": require_timestamp(session["start_time"], "start_time"),
                "end_time": require_timestamp(session["end_time"], "end_time"),
                "min_players": int(session["min_players"]),
                "max_players": int(session["max_players"]),
                "current_players": 0,
                "experience_level": session.get("experience_level") or "beginner",
                "recurring": session.get("recurring") or "once",
                "created_at": now,
                "updated_at": now,
            }
            self._sessions[stored["id"]] = stored
            self._session_ids += 1
            self._add_participant(stored["id"], stored["host_id"], is_host=True)
            return copy.deepcopy(stored)

    def get_session(self, session_id: int) -> dict[str, Any] | None:
        with self._lock:
            session = self._sessions.get(session_id)
            return copy.deepcopy(session) if session else None

    def _sorted_sessions(self, sessions: list[dict[str, Any]]) -> list[dict[str, Any]]:
        ordered = sorted(sessions, key=lambda s: (s["start_time"], s["id"]))
        return [copy.deepcopy(session) for session in ordered]

    def get_all_sessions(self) -> list[dict[str, Any]]:
        with self._lock:
            return self._sorted_sessions(list(self._sessions.values()))

    def get_upcoming_sessions(self, now: datetime | None = None) -> list[dict[str, Any]]:
        cutoff = require_timestamp(now or utc_now(), "now")
        with self._lock:
            return self._sorted_sessions(
                [s for s in self._sessions.values() if s["start_time"] > cutoff]
            )

    def get_sessions_by_host(self, host_id: int) -> list[dict[str, Any]]:
        with self._lock:
            return self._sorted_sessions(
                [s for s in self._sessions.values() if s["host_id"] == host_id]
            )

    def get_sessions_by_participant(self, user_id: int) -> list[dict[str, Any]]:
        with self._lock:
            session_ids = {
                p["session_id"] for p in self._participants.values() if p["user_id"] == user_id
            }
            return self._sorted_sessions(
                [s for s in self._sessions.values() if s["id"] in session_ids]
            )

    def get_session_participants(self, session_id: int) -> list[dict[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(p)
                for _, p in sorted(self._participants.items())
                if p["session_id"] == session_id
            ]

    def _find_participant(self, session_id: int, user_id: int) -> dict[str, Any] | None:
        return next(
            (
                p
                for p in self._participants.values()
                if p["session_id"] == session_id and p["user_id"] == user_id
            ),
            None,
        )

    def _add_participant(self, session_id: int, user_id: int, is_host: bool) -> dict[str, Any]:
        existing = self._find_participant(session_id, user_id)
        if existing:
            return existing
        participant = {
            "id": self._participant_ids,
            "session_id": session_id,
            "user_id": user_id,
            "is_host": is_host,
            "joined_at": utc_now(),
        }
        self._participants[participant["id"]] = participant
        self._participant_ids += 1
        session = self._sessions.get(session_id)
        if session:
            session["current_players"] += 1
            session["updated_at"] = utc_now()
        return participant

    def add_session_participant(
        self, session_id: int, user_id: int, is_host: bool = False
    ) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._add_participant(session_id, user_id, is_host))

    def remove_session_participant(self, session_id: int, user_id: int) -> None:
        with self._lock:
            participant = self._find_participant(session_id, user_id)
            if participant is None:
                raise LookupError("Participant not found")
            if participant["is_host"]:
                raise ValueError("Cannot remove the host from a session")
            del self._participants[participant["id"]]
            session = self._sessions.get(session_id)
            if session:
                session["current_players"] = max(1, session["current_players"] - 1)
                session["updated_at"] = utc_now()

    def get_user_availability(self, user_id: int) -> dict[str, Any] | None:
        with self._lock:
            availability = self._availability.get(user_id)
            return copy.deepcopy(availability) if availability else None

    def update_user_availability(self, availability: dict[str, Any]) -> dict[str, Any]:
        user_id = int(availability["user_id"])
        with self._lock:
            existing = self._availability.get(user_id)
            record = {
                "id": existing["id"] if existing else self._availability_ids,
                "user_id": user_id,
                **{flag: bool(availability.get(flag, False)) for flag in AVAILABILITY_FLAGS},
                "notes": availability.get("notes"),
                "updated_at": utc_now(),
            }
            if existing is None:
                self._availability_ids += 1
            self._availability[user_id] = record
            return copy.deepcopy(record)
