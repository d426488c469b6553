from __future__ import annotations

from datetime import datetime
from typing import Any

from src.db import sqlite_client as db
from src.utils.timestamps import utc_now


class DatabaseStorage:
    """Storage contract backed by a SQLite or psycopg connection."""

    def __init__(self, conn: Any) -> None:
        self.conn = conn

    def ping(self) -> bool:
        self.conn.execute("SELECT 1")
        return True

    def create_user(self, username: str, display_name: str = "") -> dict[str, Any]:
        if db.get_user_by_username(self.conn, username):
            raise ValueError("Username is already taken.")
        user_id = db.create_user(self.conn, username, display_name)
        user = db.get_user(self.conn, user_id)
        if user is None:
            raise LookupError(f"User {user_id} missing after insert")
        return user

    def get_user(self, user_id: int) -> dict[str, Any] | None:
        return db.get_user(self.conn, user_id)

    def get_user_by_username(self, username: str) -> dict[str, Any] | None:
        return db.get_user_by_username(self.conn, username)

    def get_all_users(self) -> list[dict[str, Any]]:
        return db.get_all_users(self.conn)

    def create_session(self, session: dict[str, Any]) -> dict[str, Any]:
        try:
            session_id = db.insert_session(
                self.conn, {**session, "current_players": 0}, commit=False
            )
            db.insert_participant(
                self.conn, session_id, int(session["host_id"]), is_host=True, commit=False
            )
        except Exception:
            self.conn.rollback()
            raise
        self.conn.commit()
        created = db.get_session(self.conn, session_id)
        if created is None:
            raise LookupError(f"Session {session_id} missing after insert")
        return created

    def get_session(self, session_id: int) -> dict[str, Any] | None:
        return db.get_session(self.conn, session_id)

    def get_all_sessions(self) -> list[dict[str, Any]]:
        return db.get_all_sessions(self.conn)

    def get_upcoming_sessions(self, now: datetime | None = None) -> list[dict[str, Any]]:
        return db.get_upcoming_sessions(self.conn, now or utc_now())

    def get_sessions_by_host(self, host_id: int) -> list[dict[str, Any]]:
        return db.get_sessions_by_host(self.conn, host_id)

    def get_sessions_by_participant(self, user_id: int) -> list[dict[str, Any]]:
        return db.get_sessions_by_participant(self.conn, user_id)

    def get_session_participants(self, session_id: int) -> list[dict[str, Any]]:
        return db.get_session_participants(self.conn, session_id)

    def add_session_participant(
        self, session_id: int, user_id: int, is_host: bool = False
    ) -> dict[str, Any]:
        return db.insert_participant(self.conn, session_id, user_id, is_host=is_host)

    def remove_session_participant(self, session_id: int, user_id: int) -> None:
        db.delete_participant(self.conn, session_id, user_id)

    def get_user_availability(self, user_id: int) -> dict[str, Any] | None:
        return db.get_user_availability(self.conn, user_id)

    def update_user_availability(self, availability: dict[str, Any]) -> dict[str, Any]:
        return db.upsert_user_availability(self.conn, availability)
