# trustify/scanner/candidates.py

from __future__ import annotations

import re
from typing import Any, Dict

RE_GTIN = re.compile(r"(?<!\d)\d{12,14}(?!\d)", re.ASCII)  # 12-14 ASCII digits
RE_BATCH = re.compile(r"\b(batch|lot)[:\s\-]*([A-Za-z0-9\-]{3,})", re.IGNORECASE | re.ASCII)

MAX_GTIN_CANDIDATES = 5


def extract_candidates(ocr_text: str) -> Dict[str, Any]:
    """Pull GTIN and batch/lot candidates out of OCR text."""
    text = ocr_text or ""
    gtins = RE_GTIN.findall(text)[:MAX_GTIN_CANDIDATES]
    m = RE_BATCH.search(text)
    return {"gtins": gtins, "batch": m.group(2) if m else None}


def suggest_identifiers(item: Dict[str, Any], candidates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Prefer the known product's identifiers; fall back to what OCR found.
    """
    gtins = candidates.get("gtins") or []
    item_gtin = str(item["gtin"]) if item.get("gtin") else None
    if item_gtin and item_gtin in gtins:
        gtin = item_gtin
    else:
        gtin = gtins[0] if gtins else None
    return {
        "gtin": gtin,
        "batch": item.get("batch") or candidates.get("batch") or None,
    }
