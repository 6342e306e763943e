"""Environment-driven configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _as_int(value: str | None, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    sheet_id: str = ""
    google_api_key: str = ""
    google_access_token: str = ""
    drive_folder_id: str = ""
    events_range: str = "Sheet1!A2:L"
    submissions_range: str = "Sheet2!A:M"
    rate_limit_max: int = 3
    rate_limit_window: int = 3600
    api_url: str = "http://localhost:8000"
    cache_path: str = "fetes_cache.db"
    cache_ttl: int = 15 * 60
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build settings from the process environment."""
    return Settings(
        sheet_id=os.environ.get("SHEET_ID", ""),
        google_api_key=os.environ.get("GOOGLE_API_KEY", ""),
        google_access_token=os.environ.get("GOOGLE_ACCESS_TOKEN", ""),
        drive_folder_id=os.environ.get("GOOGLE_DRIVE_FOLDER_ID", ""),
        events_range=os.environ.get("EVENTS_RANGE", "Sheet1!A2:L"),
        submissions_range=os.environ.get("SUBMISSIONS_RANGE", "Sheet2!A:M"),
        rate_limit_max=max(1, _as_int(os.environ.get("RATE_LIMIT_MAX"), 3)),
        rate_limit_window=max(1, _as_int(os.environ.get("RATE_LIMIT_WINDOW"), 3600)),
        api_url=os.environ.get("FETES_API_URL", "http://localhost:8000").rstrip("/"),
        cache_path=os.environ.get("FETES_CACHE_PATH", "fetes_cache.db"),
        cache_ttl=_as_int(os.environ.get("CACHE_TTL"), 15 * 60),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
