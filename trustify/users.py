# trustify/users.py

from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from trustify.auth import ROLES, check_password, hash_password


def _strip_sensitive(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(row["id"]),
        "email": str(row["email"]).lower(),
        "role": row.get("role", "customer"),
    }


def create_user(store, email: str, password: str, role: str) -> Dict[str, Any]:
    """Raises ValueError("user_exists") or ValueError("invalid_role")."""
    if role not in ROLES:
        raise ValueError("invalid_role")
    record = {
        "id": str(uuid.uuid4()),
        "email": email.strip().lower(),
        "password_hash": hash_password(password),
        "role": role,
    }
    store.add_user(record)
    return _strip_sensitive(record)


def verify_user_credentials(store, email: str, password: str) -> Optional[Dict[str, Any]]:
    row = store.find_user(email.strip())
    if not row or not check_password(password, row.get("password_hash")):
        return None
    return _strip_sensitive(row)
