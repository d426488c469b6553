from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Any

from src.utils.timestamps import parse_timestamp, to_storage_text, utc_now

AVAILABILITY_FLAGS = (
    "weekday_morning",
    "weekday_afternoon",
    "weekday_evening",
    "weekend_morning",
    "weekend_afternoon",
    "weekend_evening",
)

SESSION_TIMESTAMP_FIELDS = ("start_time", "end_time", "created_at", "updated_at")

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    display_name TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    game_name TEXT NOT NULL,
    game_type TEXT NOT NULL DEFAULT 'board',
    host_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    location TEXT NOT NULL,
    address TEXT,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    min_players INTEGER NOT NULL,
    max_players INTEGER NOT NULL,
    current_players INTEGER NOT NULL DEFAULT 0,
    experience_level TEXT NOT NULL DEFAULT 'beginner',
    recurring TEXT NOT NULL DEFAULT 'once'
        CHECK(recurring IN ('once', 'weekly', 'biweekly', 'monthly')),
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_sessions_start_time ON sessions(start_time);
CREATE INDEX IF NOT EXISTS idx_sessions_host ON sessions(host_id);

CREATE TABLE IF NOT EXISTS session_participants (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    is_host INTEGER NOT NULL DEFAULT 0 CHECK(is_host IN (0,1)),
    joined_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(session_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_participants_user ON session_participants(user_id);

CREATE TABLE IF NOT EXISTS user_availability (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
    weekday_morning INTEGER NOT NULL DEFAULT 0,
    weekday_afternoon INTEGER NOT NULL DEFAULT 0,
    weekday_evening INTEGER NOT NULL DEFAULT 0,
    weekend_morning INTEGER NOT NULL DEFAULT 0,
    weekend_afternoon INTEGER NOT NULL DEFAULT 0,
    weekend_evening INTEGER NOT NULL DEFAULT 0,
    notes TEXT,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

POSTGRES_SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id BIGSERIAL PRIMARY KEY,
        username TEXT NOT NULL UNIQUE,
        display_name TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id BIGSERIAL PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        game_name TEXT NOT NULL,
        game_type TEXT NOT NULL DEFAULT 'board',
        host_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        location TEXT NOT NULL,
        address TEXT,
        start_time TIMESTAMPTZ NOT NULL,
        end_time TIMESTAMPTZ NOT NULL,
        min_players INTEGER NOT NULL,
        max_players INTEGER NOT NULL,
        current_players INTEGER NOT NULL DEFAULT 0,
        experience_level TEXT NOT NULL DEFAULT 'beginner',
        recurring TEXT NOT NULL DEFAULT 'once'
            CHECK(recurring IN ('once', 'weekly', 'biweekly', 'monthly')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_start_time ON sessions(start_time)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_host ON sessions(host_id)",
    """
    CREATE TABLE IF NOT EXISTS session_participants (
        id BIGSERIAL PRIMARY KEY,
        session_id BIGINT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
        user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        is_host BOOLEAN NOT NULL DEFAULT FALSE,
        joined_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(session_id, user_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_participants_user ON session_participants(user_id)",
    """
    CREATE TABLE IF NOT EXISTS user_availability (
        id BIGSERIAL PRIMARY KEY,
        user_id BIGINT NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        weekday_morning BOOLEAN NOT NULL DEFAULT FALSE,
        weekday_afternoon BOOLEAN NOT NULL DEFAULT FALSE,
        weekday_evening BOOLEAN NOT NULL DEFAULT FALSE,
        weekend_morning BOOLEAN NOT NULL DEFAULT FALSE,
        weekend_afternoon BOOLEAN NOT NULL DEFAULT FALSE,
        weekend_evening BOOLEAN NOT NULL DEFAULT FALSE,
        notes TEXT,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def _is_postgres(conn: Any) -> bool:
    return conn.__class__.__module__.startswith("psycopg")


def _now_expr(conn: Any) -> str:
    return "CURRENT_TIMESTAMP" if _is_postgres(conn) else "datetime('now')"


def _adapt_sql(conn: Any, sql: str) -> str:
    return sql.replace("?", "%s") if _is_postgres(conn) else sql


def _execute(conn: Any, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> Any:
    if _is_postgres(conn):
        cur = conn.cursor()
        cur.execute(_adapt_sql(conn, sql), tuple(params))
        return cur
    return conn.execute(_adapt_sql(conn, sql), tuple(params))


def _to_dict(row: Any) -> dict[str, Any]:
    return row if isinstance(row, dict) else dict(row)


def _timestamp_param(conn: Any, value: Any) -> Any:
    # psycopg adapts aware datetimes natively; SQLite compares ISO text.
    if _is_postgres(conn):
        return parse_timestamp(value)
    return to_storage_text(value)


def _insert_returning_id(conn: Any, sql: str, params: list[Any]) -> int:
    if _is_postgres(conn):
        row = _execute(conn, sql + " RETURNING id", params).fetchone()
    else:
        _execute(conn, sql, params)
        row = _execute(conn, "SELECT last_insert_rowid() AS id").fetchone()
    return int(_to_dict(row)["id"])


def _session_row(row: Any) -> dict[str, Any]:
    session = _to_dict(row)
    for field_name in SESSION_TIMESTAMP_FIELDS:
        session[field_name] = parse_timestamp(session.get(field_name))
    return session


def _availability_row(row: Any) -> dict[str, Any]:
    availability = _to_dict(row)
    for flag in AVAILABILITY_FLAGS:
        availability[flag] = bool(availability.get(flag))
    availability["updated_at"] = parse_timestamp(availability.get("updated_at"))
    return availability


def _user_row(row: Any) -> dict[str, Any]:
    user = _to_dict(row)
    user["created_at"] = parse_timestamp(user.get("created_at"))
    return user


def _participant_row(row: Any) -> dict[str, Any]:
    participant = _to_dict(row)
    participant["is_host"] = bool(participant.get("is_host"))
    participant["joined_at"] = parse_timestamp(participant.get("joined_at"))
    return participant


def get_connection(db_path: str) -> Any:
    database_url = os.getenv("DATABASE_URL", "").strip()
    if database_url:
        from psycopg import connect
        from psycopg.rows import dict_row

        return connect(database_url, row_factory=dict_row, autocommit=False)

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def init_schema(conn: Any) -> None:
    if _is_postgres(conn):
        cur = conn.cursor()
        for statement in POSTGRES_SCHEMA_STATEMENTS:
            cur.execute(statement)
    else:
        conn.executescript(SQLITE_SCHEMA)
    conn.commit()


def normalize_username(username: str) -> str:
    return "".join(username.strip().split()).lower()


def create_user(conn: Any, username: str, display_name: str = "") -> int:
    normalized = normalize_username(username)
    user_id = _insert_returning_id(
        conn,
        "INSERT INTO users (username, display_name, created_at) VALUES (?, ?, ?)",
        [normalized, display_name.strip() or username.strip(), _timestamp_param(conn, utc_now())],
    )
    conn.commit()
    return user_id


def get_user(conn: Any, user_id: int) -> dict[str, Any] | None:
    row = _execute(conn, "SELECT * FROM users WHERE id = ?", [user_id]).fetchone()
    return _user_row(row) if row else None


def get_user_by_username(conn: Any, username: str) -> dict[str, Any] | None:
    row = _execute(
        conn, "SELECT * FROM users WHERE username = ?", [normalize_username(username)]
    ).fetchone()
    return _user_row(row) if row else None


def get_all_users(conn: Any) -> list[dict[str, Any]]:
    rows = _execute(conn, "SELECT * FROM users ORDER BY id ASC").fetchall()
    return [_user_row(row) for row in rows]


def insert_session(conn: Any, session: dict[str, Any], commit: bool = True) -> int:
    now = _timestamp_param(conn, utc_now())
    session_id = _insert_returning_id(
        conn,
        """
        INSERT INTO sessions (
            title, description, game_name, game_type, host_id, location, address,
            start_time, end_time, min_players, max_players, current_players,
            experience_level, recurring, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            session["title"],
            session.get("description") or "",
            session["game_name"],
            session.get("game_type") or "board",
            int(session["host_id"]),
            session["location"],
            session.get("address"),
            _timestamp_param(conn, session["start_time"]),
            _timestamp_param(conn, session["end_time"]),
            int(session["min_players"]),
            int(session["max_players"]),
            int(session.get("current_players") or 0),
            session.get("experience_level") or "beginner",
            session.get("recurring") or "once",
            now,
            now,
        ],
    )
    if commit:
        conn.commit()
    return session_id


def get_session(conn: Any, session_id: int) -> dict[str, Any] | None:
    row = _execute(conn, "SELECT * FROM sessions WHERE id = ?", [session_id]).fetchone()
    return _session_row(row) if row else None


def get_all_sessions(conn: Any) -> list[dict[str, Any]]:
    rows = _execute(conn, "SELECT * FROM sessions ORDER BY start_time ASC, id ASC").fetchall()
    return [_session_row(row) for row in rows]


def get_upcoming_sessions(conn: Any, now: Any) -> list[dict[str, Any]]:
    rows = _execute(
        conn,
        "SELECT * FROM sessions WHERE start_time > ? ORDER BY start_time ASC, id ASC",
        [_timestamp_param(conn, now)],
    ).fetchall()
    return [_session_row(row) for row in rows]


def get_sessions_by_host(conn: Any, host_id: int) -> list[dict[str, Any]]:
    rows = _execute(
        conn,
        "SELECT * FROM sessions WHERE host_id = ? ORDER BY start_time ASC, id ASC",
        [host_id],
    ).fetchall()
    return [_session_row(row) for row in rows]


def get_sessions_by_participant(conn: Any, user_id: int) -> list[dict[str, Any]]:
    rows = _execute(
        conn,
        """
        SELECT s.*
        FROM sessions s
        JOIN session_participants p ON p.session_id = s.id
        WHERE p.user_id = ?
        ORDER BY s.start_time ASC, s.id ASC
        """,
        [user_id],
    ).fetchall()
    return [_session_row(row) for row in rows]


def get_session_participants(conn: Any, session_id: int) -> list[dict[str, Any]]:
    rows = _execute(
        conn,
        "SELECT * FROM session_participants WHERE session_id = ? ORDER BY joined_at ASC, id ASC",
        [session_id],
    ).fetchall()
    return [_participant_row(row) for row in rows]


def _find_participant(conn: Any, session_id: int, user_id: int) -> dict[str, Any] | None:
    row = _execute(
        conn,
        "SELECT * FROM session_participants WHERE session_id = ? AND user_id = ?",
        [session_id, user_id],
    ).fetchone()
    return _participant_row(row) if row else None


def insert_participant(
    conn: Any, session_id: int, user_id: int, is_host: bool = False, commit: bool = True
) -> dict[str, Any]:
    existing = _find_participant(conn, session_id, user_id)
    if existing:
        return existing
    now_sql = _now_expr(conn)
    _execute(
        conn,
        """
        INSERT INTO session_participants (session_id, user_id, is_host, joined_at)
        VALUES (?, ?, ?, ?)
        """,
        [session_id, user_id, is_host, _timestamp_param(conn, utc_now())],
    )
    _execute(
        conn,
        f"""
        UPDATE sessions
        SET current_players = current_players + 1, updated_at = {now_sql}
        WHERE id = ?
        """,
        [session_id],
    )
    if commit:
        conn.commit()
    participant = _find_participant(conn, session_id, user_id)
    if participant is None:
        raise LookupError(f"Participant {user_id} missing after insert into session {session_id}")
    return participant


def delete_participant(conn: Any, session_id: int, user_id: int) -> None:
    participant = _find_participant(conn, session_id, user_id)
    if participant is None:
        raise LookupError("Participant not found")
    if participant["is_host"]:
        raise ValueError("Cannot remove the host from a session")
    now_sql = _now_expr(conn)
    _execute(conn, "DELETE FROM session_participants WHERE id = ?", [participant["id"]])
    _execute(
        conn,
        f"""
        UPDATE sessions
        SET current_players = CASE WHEN current_players > 1 THEN current_players - 1 ELSE 1 END,
            updated_at = {now_sql}
        WHERE id = ?
        """,
        [session_id],
    )
    conn.commit()


def get_user_availability(conn: Any, user_id: int) -> dict[str, Any] | None:
    row = _execute(conn, "SELECT * FROM user_availability WHERE user_id = ?", [user_id]).fetchone()
    return _availability_row(row) if row else None


def upsert_user_availability(conn: Any, availability: dict[str, Any]) -> dict[str, Any]:
    now_sql = _now_expr(conn)
    flags = [bool(availability.get(flag, False)) for flag in AVAILABILITY_FLAGS]
    _execute(
        conn,
        f"""
        INSERT INTO user_availability (
            user_id, weekday_morning, weekday_afternoon, weekday_evening,
            weekend_morning, weekend_afternoon, weekend_evening, notes, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, {now_sql})
        ON CONFLICT(user_id) DO UPDATE SET
            weekday_morning=excluded.weekday_morning,
            weekday_afternoon=excluded.weekday_afternoon,
            weekday_evening=excluded.weekday_evening,
            weekend_morning=excluded.weekend_morning,
            weekend_afternoon=excluded.weekend_afternoon,
            weekend_evening=excluded.weekend_evening,
            notes=excluded.notes,
            updated_at={now_sql}
        """,
        [int(availability["user_id"]), *flags, availability.get("notes")],
    )
    conn.commit()
    stored = get_user_availability(conn, int(availability["user_id"]))
    if stored is None:
        raise LookupError(f"Availability for user {availability['user_id']} missing after upsert")
    return stored
