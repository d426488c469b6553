from __future__ import annotations

import sqlite3


def up(conn: sqlite3.Connection) -> None:
    columns = {row[1] for row in conn.execute("PRAGMA table_info(sessions)").fetchall()}
    if "recurring" not in columns:
        conn.execute(
            "ALTER TABLE sessions ADD COLUMN recurring TEXT NOT NULL DEFAULT 'once' "
            "CHECK(recurring IN ('once', 'weekly', 'biweekly', 'monthly'))"
        )
    conn.commit()


def down(conn: sqlite3.Connection) -> None:
    conn.execute("ALTER TABLE sessions DROP COLUMN recurring")
    conn.commit()
