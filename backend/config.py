# backend/config.py

from __future__ import annotations

import os
from datetime import timezone, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# History persistence: "json" (single file) or "postgres" (scan_events table)
HISTORY_BACKEND = os.getenv("QRHUB_HISTORY_BACKEND", "json").strip().lower()
HISTORY_FILE = Path(os.getenv("QRHUB_HISTORY_FILE", "data/qr-scan-history.json"))

# DATABASE_URL (or SUPABASE_DB_URL) is only required for the postgres backend.
DATABASE_URL = os.getenv("DATABASE_URL") or os.getenv("SUPABASE_DB_URL")

REDIS_URL = os.getenv("REDIS_URL")
SENTRY_DSN = os.getenv("SENTRY_DSN", "")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

MAX_IMAGE_BYTES = int(os.getenv("QRHUB_MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
RATE_LIMIT_PER_DAY = int(os.getenv("QRHUB_RATE_LIMIT", "500"))

# Evaluating timezone for day/hour bucketing; empty means host local time.
TIMEZONE_NAME = os.getenv("QRHUB_TIMEZONE", "")


def evaluating_timezone() -> Optional[tzinfo]:
    if not TIMEZONE_NAME:
        return None
    if TIMEZONE_NAME.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(TIMEZONE_NAME)
    except ZoneInfoNotFoundError:
        raise RuntimeError(f"QRHUB_TIMEZONE is not a known timezone: {TIMEZONE_NAME!r}") from None
