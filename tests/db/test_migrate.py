from __future__ import annotations

import os

from src.db.migrate import apply_all, discover_migrations
from src.db.sqlite_client import get_connection


def test_discover_migrations_is_ordered():
    names = discover_migrations()
    assert names[0] == "001_create_users"
    assert names == sorted(names)
    assert "004_create_user_availability" in names


def test_apply_all_creates_schema_once(tmp_path):
    os.environ.pop("DATABASE_URL", None)
    db_path = str(tmp_path / "migrated.db")

    first = apply_all(db_path)
    second = apply_all(db_path)

    assert first == discover_migrations()
    assert second == []
    conn = get_connection(db_path)
    try:
        tables = {
            row["name"]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        columns = {row["name"] for row in conn.execute("PRAGMA table_info(sessions)")}
    finally:
        conn.close()
    assert {"users", "sessions", "session_participants", "user_availability"} <= tables
    assert "recurring" in columns
