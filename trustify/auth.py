# trustify/auth.py

from __future__ import annotations

import datetime as _dt
import logging
import secrets
from typing import Any, Dict, Optional

import bcrypt
import jwt

from trustify.config import SECRET_KEY as _CONFIGURED_SECRET

logger = logging.getLogger("trustify")

if not _CONFIGURED_SECRET or len(_CONFIGURED_SECRET) < 32:
    logger.warning("SECRET_KEY not set or too short; using an ephemeral key (tokens reset on restart).")
    SECRET_KEY = secrets.token_urlsafe(48)
else:
    SECRET_KEY = _CONFIGURED_SECRET

ACCESS_TOKEN_MAX_AGE = 60 * 60 * 12  # 12 hours

ROLES = ("customer", "brand", "admin")
MANAGER_ROLES = ("brand", "admin")

_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in storage
        return False


def _expiry(seconds: int) -> _dt.datetime:
    return _dt.datetime.now(tz=_dt.timezone.utc) + _dt.timedelta(seconds=seconds)


def create_access_token(user: Dict[str, Any]) -> str:
    payload = {
        "uid": user["id"],
        "email": user["email"],
        "role": user.get("role", "customer"),
        "type": "access",
        "exp": _expiry(ACCESS_TOKEN_MAX_AGE),
        "iat": _dt.datetime.now(tz=_dt.timezone.utc),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=_ALGORITHM)


def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        data = jwt.decode(token, SECRET_KEY, algorithms=[_ALGORITHM])
        if data.get("type") != "access":
            return None
        return data
    except jwt.PyJWTError:
        return None
