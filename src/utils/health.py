from __future__ import annotations

from typing import Any


def liveness() -> dict[str, Any]:
    return {"ok": True}


def _database_ready(conn: Any) -> str:
    try:
        if hasattr(conn, "execute"):
            conn.execute("SELECT 1").fetchone()
        else:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.fetchone()
        return "ready"
    except Exception as exc:
        return f"error: {exc}"


def readiness(conn: Any | None, store: Any | None = None) -> dict[str, Any]:
    dependencies: dict[str, str] = {}
    if store is None:
        dependencies["storage"] = "error: unavailable"
    elif conn is not None:
        dependencies["storage"] = _database_ready(conn)
    else:
        # In-memory store has no connection to probe.
        try:
            store.ping()
            dependencies["storage"] = "ready"
        except Exception as exc:
            dependencies["storage"] = f"error: {exc}"
    ok = dependencies["storage"] == "ready"
    return {"ok": ok, "dependencies": dependencies}
