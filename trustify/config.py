# trustify/config.py

from __future__ import annotations

import os
from pathlib import Path


def _flag(name: str, default: str) -> bool:
    return (os.getenv(name) or default).strip().lower() == "true"


ROOT = Path(os.getenv("TRUSTIFY_ROOT") or os.getcwd())

USE_SQL = _flag("USE_SQL", "false")
AUTO_INSERT_PRODUCT = _flag("AUTO_INSERT_PRODUCT", "true")

DATABASE_URL = os.getenv("DATABASE_URL", "")

DATA_DIR = Path(os.getenv("DATA_DIR") or ROOT / "data")
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR") or ROOT / "uploads")
WEB_DIR = Path(os.getenv("WEB_DIR") or ROOT / "web")

SECRET_KEY = os.getenv("SECRET_KEY", "")

VAPID_PUBLIC_KEY = os.getenv("VAPID_PUBLIC_KEY", "")
VAPID_PRIVATE_KEY = os.getenv("VAPID_PRIVATE_KEY", "")
VAPID_SUBJECT = os.getenv("VAPID_SUBJECT", "mailto:admin@trustify.local")

OCR_LANG = os.getenv("OCR_LANG", "eng+tha")

REDIS_URL = os.getenv("REDIS_URL")
GUEST_DAILY_SCANS = int(os.getenv("GUEST_DAILY_SCANS", "20"))

SENTRY_DSN = os.getenv("SENTRY_DSN", "")

HOST = "0.0.0.0"
PORT = int(os.getenv("PORT", "8787"))

MAX_UPLOAD_BYTES = 15 * 1024 * 1024
