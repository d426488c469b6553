from __future__ import annotations

import os
import sqlite3
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from src.db.sqlite_client import get_connection, init_schema
from src.storage.database import DatabaseStorage
from src.storage.memory import MemoryStorage

# Wednesday, 2026-10-21 12:00 UTC
FIXED_NOW = datetime(2026, 10, 21, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def sqlite_db(tmp_path: Path) -> Generator[sqlite3.Connection, None, None]:
    os.environ.pop("DATABASE_URL", None)
    db_path = str(tmp_path / "test.db")
    conn = get_connection(db_path)
    init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def memory_store() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def db_store(sqlite_db: sqlite3.Connection) -> DatabaseStorage:
    return DatabaseStorage(sqlite_db)


@pytest.fixture(params=["memory", "database"])
def store(request: pytest.FixtureRequest) -> Any:
    if request.param == "memory":
        return MemoryStorage()
    return DatabaseStorage(request.getfixturevalue("sqlite_db"))


@pytest.fixture
def make_session_row() -> Callable[..., dict[str, Any]]:
    counter = {"next_id": 1}

    def _make(start: datetime, current_players: int = 2, max_players: int = 5, **extra: Any):
        session_id = extra.pop("id", counter["next_id"])
        counter["next_id"] += 1
        return {
            "id": session_id,
            "title": f"Session {session_id}",
            "game_name": "Catan",
            "host_id": 1,
            "location": "Cafe",
            "start_time": start,
            "end_time": start + timedelta(hours=3),
            "min_players": 2,
            "max_players": max_players,
            "current_players": current_players,
            **extra,
        }

    return _make


@pytest.fixture
def session_payload(now: datetime) -> Callable[..., dict[str, Any]]:
    def _payload(host_id: int, **overrides: Any) -> dict[str, Any]:
        start = now + timedelta(days=3, hours=7)
        payload = {
            "title": "Saturday Catan",
            "description": "Bring snacks.",
            "game_name": "Catan",
            "game_type": "board",
            "host_id": host_id,
            "location": "The Dice Tower Cafe",
            "start_time": start,
            "end_time": start + timedelta(hours=3),
            "min_players": 2,
            "max_players": 4,
            "experience_level": "beginner",
        }
        payload.update(overrides)
        return payload

    return _payload
