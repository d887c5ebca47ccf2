from __future__ import annotations

import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def _default_data_file() -> str:
    here = Path(__file__).resolve().parent.parent
    return str(here / "storage" / "shelf_alerts_data.json")


DATA_FILE = os.getenv("SHELF_ALERTS_DATA_FILE", _default_data_file())
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
DEFAULT_USER_ID = "demo-user"

DEFAULT_ADVANCE_NOTICE_DAYS = 3
MIN_ADVANCE_NOTICE_DAYS = 0
MAX_ADVANCE_NOTICE_DAYS = 60
DEFAULT_ALERT_HOUR = 9
DEFAULT_ALERT_MINUTE = 0
DEFAULT_DAILY_CHECK_HOUR = 8
DEFAULT_DAILY_CHECK_MINUTE = 0
SNOOZE_DELAY_HOURS = 24


def _float_env(name: str, fallback: float) -> float:
    try:
        return float(os.getenv(name, fallback))
    except (TypeError, ValueError):
        return fallback


AUTHORIZATION_WAIT_SECONDS = _float_env("AUTHORIZATION_WAIT_SECONDS", 5.0)


def get_timezone() -> ZoneInfo:
    name = os.getenv("SHELF_ALERTS_TIMEZONE", "UTC").strip() or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def get_cors_allow_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").strip()
    if not raw:
        return ["*"]
    return [entry.strip() for entry in raw.split(",") if entry.strip()]
