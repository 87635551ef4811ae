# trustify/scanner/overlay.py

from __future__ import annotations

from typing import Any, Dict, Optional

import cv2
from PIL import Image

from .images import cv2_to_pil, pil_to_cv2

QR_COLOR = (233, 165, 14)  # BGR of #0ea5e9
BARCODE_COLOR = (94, 197, 34)  # BGR of #22c55e


def _box(canvas, box: Dict[str, int], color, label: str) -> None:
    x, y, w, h = box["x"], box["y"], box["w"], box["h"]
    cv2.rectangle(canvas, (x, y), (x + w, y + h), color, 3)
    ty = y + 16 if y - 6 < 12 else y - 6
    cv2.putText(canvas, label, (x + 4, ty), cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, cv2.LINE_AA)


def draw_detections(img: Optional[Image.Image], decoded: Optional[Dict[str, Any]] = None) -> Optional[Image.Image]:
    """Return a copy of img with QR / barcode boxes drawn on it."""
    if img is None:
        return None
    decoded = decoded or {}
    canvas = pil_to_cv2(img)

    qr = decoded.get("qr") or {}
    if qr.get("box"):
        _box(canvas, qr["box"], QR_COLOR, "QR")
    for bc in decoded.get("barcodes") or []:
        if bc.get("box"):
            _box(canvas, bc["box"], BARCODE_COLOR, bc.get("format") or "BARCODE")

    return cv2_to_pil(canvas)
