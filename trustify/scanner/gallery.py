# trustify/scanner/gallery.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from PIL import Image

from .images import fit_width
from .phash import average_hash, similarity_percent

logger = logging.getLogger("trustify")

GALLERY_LIMIT = 15


def _empty(ok: bool) -> Dict[str, Any]:
    return {"ok": ok, "best": None, "list": []}


def _resolve(upload_dir: Path, image_url: str) -> Path:
    # only files that live directly in upload_dir are readable
    return Path(upload_dir) / Path(image_url).name


def compare_with_gallery(
    gtin: Optional[str],
    img: Optional[Image.Image],
    store,
    upload_dir: Path,
    limit: int = GALLERY_LIMIT,
) -> Dict[str, Any]:
    """
    Compare the scanned image against the product's reference images by aHash.

    Returns {"ok", "best", "list"} with list sorted by similarity descending.
    """
    if not gtin or img is None:
        return _empty(False)
    try:
        refs = store.list_images(gtin)
        if not refs:
            return _empty(True)

        now_hash = average_hash(img)
        results = []
        for ref in refs[:limit]:
            url = ref.get("image_url") or ""
            try:
                with Image.open(_resolve(upload_dir, url)) as ref_img:
                    ref_img.load()
                    ref_hash = average_hash(fit_width(ref_img.convert("RGB"), 800))
            except (OSError, ValueError) as exc:
                logger.warning("gallery image unreadable %s: %s", url, exc)
                continue
            results.append(
                {
                    "url": url,
                    "angle": ref.get("angle") or "-",
                    "uploaded_at": ref.get("uploaded_at"),
                    "similarity": similarity_percent(now_hash, ref_hash),
                }
            )

        results.sort(key=lambda r: r["similarity"], reverse=True)
        return {"ok": True, "best": results[0] if results else None, "list": results}
    except Exception as exc:
        logger.warning("compare_with_gallery error: %s", exc)
        return _empty(False)
