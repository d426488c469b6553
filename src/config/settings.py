from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

STORAGE_BACKENDS = ("database", "memory")


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    sqlite_db_path: str
    storage_backend: str
    log_level: str
    base_url: str
    display_timezone: str
    seed_sample_data: bool
    sample_data_path: str


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "").strip(),
        sqlite_db_path=os.getenv("SQLITE_DB_PATH", "data/tablematch.db"),
        storage_backend=os.getenv("STORAGE_BACKEND", "database").strip().lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        base_url=os.getenv("BASE_URL", "http://localhost:8501"),
        display_timezone=os.getenv("DISPLAY_TIMEZONE", "UTC").strip(),
        seed_sample_data=_get_bool_env("SEED_SAMPLE_DATA", True),
        sample_data_path=os.getenv("SAMPLE_DATA_PATH", "config/sample_data.yaml"),
    )


def validate_settings(settings: Settings) -> list[str]:
    errors: list[str] = []
    if settings.storage_backend not in STORAGE_BACKENDS:
        errors.append("STORAGE_BACKEND must be one of: " + ", ".join(STORAGE_BACKENDS))
    if settings.storage_backend == "database" and not (
        settings.database_url or settings.sqlite_db_path.strip()
    ):
        errors.append("SQLITE_DB_PATH is required when DATABASE_URL is empty")
    if not settings.base_url:
        errors.append("BASE_URL is required")
    if "://" not in settings.base_url:
        errors.append("BASE_URL must include scheme, e.g. http://")
    if settings.database_url and not settings.database_url.startswith(
        ("postgres://", "postgresql://")
    ):
        errors.append("DATABASE_URL must start with postgres:// or postgresql://")
    if settings.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        errors.append("LOG_LEVEL must be a standard logging level name")
    try:
        ZoneInfo(settings.display_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"DISPLAY_TIMEZONE is not a known timezone: {settings.display_timezone!r}")
    if settings.seed_sample_data and not settings.sample_data_path.strip():
        errors.append("SAMPLE_DATA_PATH is required when SEED_SAMPLE_DATA is enabled")
    return errors


def get_timezone(settings: Settings) -> ZoneInfo:
    return ZoneInfo(settings.display_timezone)


def ensure_runtime_dirs(settings: Settings) -> None:
    if settings.storage_backend == "database" and not settings.database_url:
        Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)
