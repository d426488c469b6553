from __future__ import annotations

import logging
from typing import Any

from src.config.settings import Settings
from src.db.sqlite_client import get_connection, init_schema
from src.storage.base import Storage
from src.storage.database import DatabaseStorage
from src.storage.memory import MemoryStorage

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> tuple[Storage, Any | None]:
    """Return the configured store and, for the database backend, its connection."""
    if settings.storage_backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryStorage(), None
    conn = get_connection(settings.sqlite_db_path)
    init_schema(conn)
    backend = "postgres" if settings.database_url else f"sqlite at {settings.sqlite_db_path}"
    logger.info("Using database storage (%s)", backend)
    return DatabaseStorage(conn), conn
