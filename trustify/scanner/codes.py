# trustify/scanner/codes.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from .images import fit_width, load_image, pil_to_cv2

logger = logging.getLogger("trustify")


def _corner_box(points: np.ndarray) -> Optional[Dict[str, int]]:
    """
    Axis-aligned box from QR corners ordered top-left, top-right,
    bottom-right, bottom-left.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) != 4:
        return None
    top_left, top_right, _, bottom_left = pts
    return {
        "x": int(round(min(top_left[0], bottom_left[0]))),
        "y": int(round(min(top_left[1], top_right[1]))),
        "w": int(round(abs(top_right[0] - top_left[0]))),
        "h": int(round(abs(bottom_left[1] - top_left[1]))),
    }


def decode_qr(img_bgr: np.ndarray) -> Optional[Dict[str, Any]]:
    """Decode the first QR code in the image with OpenCV, or None."""
    detector = cv2.QRCodeDetector()
    try:
        txt, pts, _ = detector.detectAndDecode(img_bgr)
    except cv2.error:
        return None
    if not txt:
        return None
    return {
        "text": txt.strip(),
        "box": _corner_box(pts) if pts is not None else None,
        "format": "QR",
    }


def decode_barcodes(img_bgr: np.ndarray) -> List[Dict[str, Any]]:
    """Run pyzbar for 1D symbologies (EAN-13, UPC-A, CODE128, ...)."""
    # loads libzbar; failures surface to decode_codes
    from pyzbar.pyzbar import decode as decode_zbar

    results = []
    for obj in decode_zbar(img_bgr):
        if obj.type == "QRCODE":
            continue
        raw = obj.data.decode("utf-8", errors="replace").strip()
        r = obj.rect
        results.append(
            {
                "text": raw,
                "format": obj.type,
                "box": {"x": r.left, "y": r.top, "w": r.width, "h": r.height},
            }
        )
    return results


def decode_codes(image_bytes: bytes) -> Dict[str, Any]:
    """
    Decode QR and barcodes from an uploaded image.

    Returns {"ok", "qr", "barcodes", "image"}; failures degrade to an empty result.
    """
    try:
        img = fit_width(load_image(image_bytes), 1600)
        bgr = pil_to_cv2(img)
        qr = decode_qr(bgr)
        try:
            barcodes = decode_barcodes(bgr)
        except Exception as exc:
            logger.warning("barcode decode failed: %s", exc)
            barcodes = []
        return {"ok": True, "qr": qr, "barcodes": barcodes, "image": img}
    except Exception as exc:
        logger.warning("decode_codes error: %s", exc)
        return {"ok": False, "qr": None, "barcodes": [], "image": None}
