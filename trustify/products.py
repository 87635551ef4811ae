# trustify/products.py

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def upload_filename(original_name: str) -> str:
    """`<epoch-ms>-<random><ext>`, keeping the original extension."""
    ext = Path(original_name or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


def save_upload(upload_dir: Path, original_name: str, data: bytes) -> str:
    upload_dir.mkdir(parents=True, exist_ok=True)
    name = upload_filename(original_name)
    (upload_dir / name).write_bytes(data)
    return name


def add_product_image(
    store,
    upload_dir: Path,
    gtin: str,
    original_name: str,
    data: bytes,
    angle: str | None = None,
    auto_insert: bool = True,
) -> Dict[str, Any]:
    """
    Store an uploaded image for a product.

    Raises LookupError when the product is unknown and auto_insert is off.
    """
    gtin = str(gtin).strip()
    if auto_insert:
        store.insert_product_if_missing({"gtin": gtin, "status": "pending"})
    elif not store.get_product(gtin):
        raise LookupError(gtin)

    name = save_upload(upload_dir, original_name, data)
    record = {
        "product_gtin": gtin,
        "image_url": f"/uploads/{name}",
        "angle": angle or None,
        "uploaded_at": _now_iso(),
    }
    return store.add_image(record)
