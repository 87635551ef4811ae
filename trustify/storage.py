# trustify/storage.py

"""
Record storage for Trustify.

Two back-ends share one interface:

    JsonStore  - flat JSON arrays in DATA_DIR, rewritten wholesale on each write
    SqlStore   - PostgreSQL tables (see trustify/db.py), selected with USE_SQL=true

Records are plain dicts:

    users      {id, email, password_hash, role}
    products   {gtin, name, brand, batch, status, trust_score}
    images     {product_gtin, image_url, angle, uploaded_at}
    scans      {id, gtin, confidence, label, ok, created_at}
    reports    {id, gtin, reason, email, created_at}
    push_subs  {endpoint, keys, created_at}
"""

from __future__ import annotations

import json
import os
import tempfile
import logging
import threading
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from trustify import config

logger = logging.getLogger("trustify")

COLLECTIONS = [
    "users.json",
    "products.json",
    "images.json",
    "scans.json",
    "reports.json",
    "push_subs.json",
]

PRODUCT_FIELDS = ("gtin", "name", "brand", "batch", "status", "trust_score")


def normalize_product(record: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only product fields, with empty defaults."""
    product = {field: record.get(field) for field in PRODUCT_FIELDS}
    product["gtin"] = str(product["gtin"] or "").strip()
    for field in ("name", "brand", "batch", "status"):
        product[field] = product[field] or ""
    try:
        product["trust_score"] = int(product["trust_score"] or 0)
    except (TypeError, ValueError):
        product["trust_score"] = 0
    return product


class JsonStore:
    """Tiny JSON-file database (local mode)."""

    mode = "local"

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)
        self._lock = threading.RLock()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for name in COLLECTIONS:
            if not self._path(name).exists():
                self.save(name, [])

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def load(self, name: str, default: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
        with self._lock:
            try:
                return json.loads(self._path(name).read_text(encoding="utf-8"))
            except (OSError, ValueError):
                return list(default or [])

    def save(self, name: str, data: Sequence[Dict[str, Any]]) -> None:
        # write beside the target and swap it in; readers never see a partial file
        with self._lock:
            fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(list(data), fh, indent=2)
                os.replace(tmp, self._path(name))
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise

    def _append(self, name: str, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            rows = self.load(name)
            rows.append(record)
            self.save(name, rows)
        return record

    # ----------------------------- users -----------------------------
    def find_user(self, email: str) -> Optional[Dict[str, Any]]:
        email_lower = email.lower()
        for user in self.load("users.json"):
            if str(user.get("email", "")).lower() == email_lower:
                return user
        return None

    def add_user(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            if self.find_user(record["email"]):
                raise ValueError("user_exists")
            return self._append("users.json", record)

    # ---------------------------- products ---------------------------
    def get_product(self, gtin: str) -> Optional[Dict[str, Any]]:
        for product in self.load("products.json"):
            if str(product.get("gtin")) == str(gtin):
                return product
        return None

    def list_products(self) -> List[Dict[str, Any]]:
        return self.load("products.json")

    def upsert_product(self, record: Dict[str, Any]) -> Dict[str, Any]:
        product = normalize_product(record)
        with self._lock:
            rows = self.load("products.json")
            for i, row in enumerate(rows):
                if str(row.get("gtin")) == product["gtin"]:
                    rows[i] = product
                    break
            else:
                rows.append(product)
            self.save("products.json", rows)
        return product

    def insert_product_if_missing(self, record: Dict[str, Any]) -> bool:
        """Insert the product unless its GTIN exists. Returns True when inserted."""
        product = normalize_product(record)
        with self._lock:
            rows = self.load("products.json")
            if any(str(row.get("gtin")) == product["gtin"] for row in rows):
                return False
            rows.append(product)
            self.save("products.json", rows)
        return True

    # ----------------------------- images ----------------------------
    def list_images(self, gtin: str) -> List[Dict[str, Any]]:
        return [img for img in self.load("images.json") if str(img.get("product_gtin")) == str(gtin)]

    def add_image(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return self._append("images.json", record)

    # ------------------------------ scans ----------------------------
    def add_scan(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return self._append("scans.json", record)

    def list_scans(self, gtin: Optional[str] = None) -> List[Dict[str, Any]]:
        scans = self.load("scans.json")
        if gtin:
            scans = [s for s in scans if str(s.get("gtin")) == str(gtin)]
        return scans

    # ----------------------------- reports ---------------------------
    def add_report(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return self._append("reports.json", record)

    def list_reports(self) -> List[Dict[str, Any]]:
        return self.load("reports.json")

    # ------------------------------ push -----------------------------
    def add_push_subscription(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            rows = [r for r in self.load("push_subs.json") if r.get("endpoint") != record["endpoint"]]
            rows.append(record)
            self.save("push_subs.json", rows)
        return record

    def list_push_subscriptions(self) -> List[Dict[str, Any]]:
        return self.load("push_subs.json")


@lru_cache(maxsize=1)
def get_store():
    """Return the process-wide store selected by USE_SQL."""
    if config.USE_SQL:
        from trustify.db import SqlStore

        return SqlStore(config.DATABASE_URL)
    return JsonStore(config.DATA_DIR)
