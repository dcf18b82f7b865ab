"""config.py — Central configuration — environment variables, constants, logging.

Every value is read once at import time. Tests override module attributes
directly (``config.S3_PREFIX = "..."``) and restore them afterwards.
"""
from __future__ import annotations

import logging
import os


def _normalize_api_keys(*raw_values: str) -> tuple[str, ...]:
    """Return deduplicated, non-empty key values from scalar/csv env sources."""
    keys: list[str] = []
    seen: set[str] = set()
    for raw in raw_values:
        if not raw:
            continue
        for part in str(raw).split(","):
            key = part.strip()
            if not key or key in seen:
                continue
            seen.add(key)
            keys.append(key)
    return tuple(keys)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


__all__ = [
    "AUTOSAVE_DEBOUNCE_SECONDS",
    "AWS_REGION",
    "CATEGORY_CONTACTS",
    "CATEGORY_FILES",
    "CATEGORY_NOTES",
    "CATEGORY_ONBOARDING",
    "CATEGORY_PROJECTIONS",
    "COGNITO_CLIENT_ID",
    "COGNITO_USER_POOL_ID",
    "CONTACTS_FILE_NAME",
    "CORS_ORIGIN",
    "DEFAULT_FOLDER",
    "LIST_ALL_TOKENS",
    "LIST_MAX_KEYS",
    "MAX_CONTACTS",
    "MAX_FILE_NAME_LENGTH",
    "MAX_ID_LENGTH",
    "MAX_NOTE_CONTENT",
    "MAX_PROJECTION_SERIES",
    "MAX_TENANT_LENGTH",
    "MAX_TITLE_LENGTH",
    "NOTE_PLACEHOLDER_TITLE",
    "PRESIGN_EXPIRES_SECONDS",
    "S3_BUCKET",
    "S3_PREFIX",
    "TITLE_FETCH_CONCURRENCY",
    "TOUR_FILE_NAME",
    "TOUR_VERSION",
    "UNITY_INTERNAL_API_KEY",
    "UNITY_INTERNAL_API_KEY_PREVIOUS",
    "UNITY_INTERNAL_API_KEYS",
    "logger",
]

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

S3_BUCKET = os.environ.get("AWS_BUCKET_NAME", "")
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
S3_PREFIX = os.environ.get("UNITY_S3_PREFIX", "").strip().strip("/")

CATEGORY_NOTES = "notes"
CATEGORY_CONTACTS = "contacts"
CATEGORY_PROJECTIONS = "projections"
CATEGORY_ONBOARDING = "onboarding"
CATEGORY_FILES = "files"

CONTACTS_FILE_NAME = "contacts.json"
TOUR_FILE_NAME = "welcome-tour.json"
DEFAULT_FOLDER = "Documents"
LIST_ALL_TOKENS = {"__all__", "*", ""}

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

LIST_MAX_KEYS = _env_int("LIST_MAX_KEYS", 200)
PRESIGN_EXPIRES_SECONDS = _env_int("PRESIGN_EXPIRES_SECONDS", 60 * 10)
TITLE_FETCH_CONCURRENCY = _env_int("TITLE_FETCH_CONCURRENCY", 6)
MAX_FILE_NAME_LENGTH = 180
MAX_ID_LENGTH = 80
MAX_TENANT_LENGTH = 128
MAX_TITLE_LENGTH = 80
MAX_NOTE_CONTENT = 200_000
MAX_CONTACTS = 5000
MAX_PROJECTION_SERIES = 1200
NOTE_PLACEHOLDER_TITLE = "Untitled note"
TOUR_VERSION = 1

AUTOSAVE_DEBOUNCE_SECONDS = float(os.environ.get("AUTOSAVE_DEBOUNCE_SECONDS", "2.0"))

# ---------------------------------------------------------------------------
# HTTP / auth
# ---------------------------------------------------------------------------

CORS_ORIGIN = os.environ.get("CORS_ORIGIN", "http://localhost:3000")
COGNITO_USER_POOL_ID = os.environ.get("COGNITO_USER_POOL_ID", "")
COGNITO_CLIENT_ID = os.environ.get("COGNITO_CLIENT_ID", "")
UNITY_INTERNAL_API_KEY = os.environ.get("UNITY_INTERNAL_API_KEY", "")
UNITY_INTERNAL_API_KEY_PREVIOUS = os.environ.get("UNITY_INTERNAL_API_KEY_PREVIOUS", "")
UNITY_INTERNAL_API_KEYS = _normalize_api_keys(
    os.environ.get("UNITY_INTERNAL_API_KEYS", ""),
    UNITY_INTERNAL_API_KEY,
    UNITY_INTERNAL_API_KEY_PREVIOUS,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(logging.INFO)
