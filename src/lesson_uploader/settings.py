from __future__ import annotations

import os


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


BUNNY_API_KEY = os.getenv("BUNNY_API_KEY", "")
BUNNY_API_BASE_URL = os.getenv("BUNNY_API_BASE_URL", "https://api.bunny.net")
BUNNY_VIDEO_BASE_URL = os.getenv("BUNNY_VIDEO_BASE_URL", "https://video.bunnycdn.com")
BUNNY_EMBED_BASE_URL = os.getenv("BUNNY_EMBED_BASE_URL", "https://iframe.mediadelivery.net/embed")

GOOGLE_SHEETS_ACCESS_TOKEN = os.getenv("GOOGLE_SHEETS_ACCESS_TOKEN", "")
GOOGLE_SHEETS_SPREADSHEET_ID = os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID", "")
GOOGLE_SHEET_NAME = os.getenv("GOOGLE_SHEET_NAME", "Videos")
SHEET_NAME_COLUMN = os.getenv("SHEET_NAME_COLUMN", "N")
SHEET_EMBED_COLUMN = os.getenv("SHEET_EMBED_COLUMN", "W")
SHEET_BATCH_SIZE = _get_int("SHEET_BATCH_SIZE", 50)
SHEET_MAX_RETRIES = _get_int("SHEET_MAX_RETRIES", 3)
SHEET_RETRY_DELAY_S = _get_float("SHEET_RETRY_DELAY_S", 1.0)

UPLOAD_MAX_CONCURRENT = _get_int("UPLOAD_MAX_CONCURRENT", 3)
UPLOAD_PROGRESS_INTERVAL_BYTES = _get_int("UPLOAD_PROGRESS_INTERVAL_BYTES", 1024 * 1024)
UPLOAD_IDLE_TIMEOUT_S = _get_float("UPLOAD_IDLE_TIMEOUT_S", 120.0)
HTTP_CONNECT_TIMEOUT_S = _get_float("HTTP_CONNECT_TIMEOUT_S", 20.0)
RETRY_MAX_ATTEMPTS = _get_int("RETRY_MAX_ATTEMPTS", 3)
RETRY_DELAY_S = _get_float("RETRY_DELAY_S", 5.0)

AUTO_ASSIGN_MIN_CONFIDENCE = _get_int("AUTO_ASSIGN_MIN_CONFIDENCE", 90)
COLLECTION_YEAR = os.getenv("COLLECTION_YEAR", "2025")
DEFAULT_TERM = os.getenv("DEFAULT_TERM", "T1")

CREDENTIAL_BACKEND = os.getenv("CREDENTIAL_BACKEND", "memory").strip().lower()
SQLITE_PATH = os.getenv("SQLITE_PATH", "./lesson_uploader.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
