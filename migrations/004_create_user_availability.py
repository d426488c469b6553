from __future__ import annotations

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
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
    )
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    conn.executescript("DROP TABLE IF EXISTS user_availability;")
    conn.commit()
