# trustify/scanner/ocr.py

from __future__ import annotations

import io
import logging
import re
from typing import Any, Dict, Optional

import pytesseract
from PIL import Image

from trustify import config
from .images import fit_width, load_image

logger = logging.getLogger("trustify")

_WS = re.compile(r"\s+")


def collapse_whitespace(text: Optional[str]) -> str:
    return _WS.sub(" ", text or "").strip()


def run_ocr(image_bytes: bytes, lang: Optional[str] = None) -> Dict[str, Any]:
    """
    OCR an uploaded image with Tesseract.

    Returns {"text": str, "ok": bool, "image": PIL.Image | None}. Any failure
    (bad image, missing tesseract binary, engine error) yields an empty result.
    """
    try:
        img = fit_width(load_image(image_bytes), 1600)
        # same JPEG re-encode the web client sends to the engine
        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=85)
        buf.seek(0)
        with Image.open(buf) as prepared:
            raw = pytesseract.image_to_string(prepared, lang=lang or config.OCR_LANG)
        return {"text": collapse_whitespace(raw), "ok": True, "image": img}
    except Exception as exc:
        logger.warning("OCR error: %s", exc)
        return {"text": "", "ok": False, "image": None}
