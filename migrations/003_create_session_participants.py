from __future__ import annotations

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS session_participants (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            session_id INTEGER NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            is_host INTEGER NOT NULL DEFAULT 0 CHECK(is_host IN (0,1)),
            joined_at TEXT NOT NULL DEFAULT (datetime('now')),
            UNIQUE(session_id, user_id)
        );
        CREATE INDEX IF NOT EXISTS idx_participants_user ON session_participants(user_id);
        """
    )
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    conn.executescript("DROP TABLE IF EXISTS session_participants;")
    conn.commit()
