from __future__ import annotations

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
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
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        CREATE INDEX IF NOT EXISTS idx_sessions_start_time ON sessions(start_time);
        CREATE INDEX IF NOT EXISTS idx_sessions_host ON sessions(host_id);
        """
    )
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    conn.executescript("DROP TABLE IF EXISTS sessions;")
    conn.commit()
