# trustify/scanner/engine.py

from __future__ import annotations

import base64
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Optional

from trustify.utils.reason_cleaner import clean_reasons
from .candidates import extract_candidates, suggest_identifiers
from .codes import decode_codes
from .gallery import compare_with_gallery
from .highlight import highlight_matches
from .images import to_jpeg_bytes
from .ocr import run_ocr
from .overlay import draw_detections
from .scoring import apply_similarity_bonus, score_with_breakdown

logger = logging.getLogger("trustify")

SCAN_EXECUTOR = ThreadPoolExecutor(max_workers=4)


# ---------------------------------------------------------
# MAIN ENTRY
# ---------------------------------------------------------
def analyze_image(
    image_bytes: bytes,
    item: Optional[Dict[str, Any]] = None,
    store=None,
    upload_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Full scan: OCR + code decoding in parallel, candidate extraction,
    scoring, optional gallery similarity, detection overlay.
    """
    item = item or {}

    ocr_future = SCAN_EXECUTOR.submit(run_ocr, image_bytes)
    dec_future = SCAN_EXECUTOR.submit(decode_codes, image_bytes)
    ocr = ocr_future.result()
    dec = dec_future.result()

    candidates = extract_candidates(ocr["text"])
    suggested = suggest_identifiers(item, candidates)

    highlights_html = highlight_matches(
        ocr["text"],
        gtin=item.get("gtin") or suggested["gtin"],
        brand=item.get("brand"),
        batch=item.get("batch") or suggested["batch"],
    )

    scored = score_with_breakdown(item, ocr["text"], dec)
    analysed = dec["image"] if dec["image"] is not None else ocr["image"]

    similarity = {"ok": False, "best": None, "list": []}
    key = item.get("gtin") or suggested["gtin"]
    if key and store is not None and upload_dir is not None:
        similarity = compare_with_gallery(key, analysed, store, upload_dir)
        apply_similarity_bonus(scored, similarity)

    image = draw_detections(analysed, dec)

    logger.info(
        "scan gtin=%s confidence=%s label=%s qr=%s",
        key,
        scored["confidence"],
        scored["label"],
        bool((dec.get("qr") or {}).get("text")),
    )

    return {
        "ok": bool(ocr["ok"] or dec["ok"]),
        "ocr_text": ocr["text"],
        "highlights_html": highlights_html,
        "suggested": suggested,
        "decoded": {"qr": dec["qr"], "barcodes": dec["barcodes"]},
        "ai": {"confidence": scored["confidence"], "label": scored["label"]},
        "breakdown": scored["breakdown"],
        "reasons": clean_reasons(scored["breakdown"]),
        "similarity": similarity,
        "image": image,
    }


def to_public(result: Dict[str, Any], preview: bool = True) -> Dict[str, Any]:
    """JSON-safe view of an analysis result (image swapped for a base64 JPEG)."""
    public = {k: v for k, v in result.items() if k != "image"}
    image = result.get("image")
    if preview and image is not None:
        public["preview_jpeg"] = base64.b64encode(to_jpeg_bytes(image, quality=80)).decode("ascii")
    else:
        public["preview_jpeg"] = None
    return public
