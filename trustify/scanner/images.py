# trustify/scanner/images.py

"""
Image helpers shared by the scan pipeline (Pillow <-> OpenCV).
"""

from __future__ import annotations

import io

import cv2
import numpy as np
from PIL import Image


def load_image(image_bytes: bytes) -> Image.Image:
    """Decode raw bytes into an RGB PIL image. Raises on undecodable data."""
    img = Image.open(io.BytesIO(image_bytes))
    img.load()
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def fit_width(img: Image.Image, max_w: int = 1600) -> Image.Image:
    """Downscale to at most max_w pixels wide, keeping aspect ratio. Never upscales."""
    scale = min(1.0, max_w / float(img.width))
    w = max(1, round(img.width * scale))
    h = max(1, round(img.height * scale))
    if (w, h) == img.size:
        return img.copy()
    return img.resize((w, h), Image.BILINEAR)


def pil_to_cv2(img: Image.Image) -> np.ndarray:
    """Convert a PIL image to an OpenCV BGR ndarray."""
    if img.mode not in ("RGB", "RGBA", "L"):
        img = img.convert("RGB")

    arr = np.array(img)

    if img.mode == "RGBA":
        arr = cv2.cvtColor(arr, cv2.COLOR_RGBA2BGR)
    elif img.mode == "RGB":
        arr = cv2.cvtColor(arr, cv2.COLOR_RGB2BGR)
    elif img.mode == "L":
        arr = cv2.cvtColor(arr, cv2.COLOR_GRAY2BGR)

    return arr


def cv2_to_pil(arr: np.ndarray) -> Image.Image:
    return Image.fromarray(cv2.cvtColor(arr, cv2.COLOR_BGR2RGB))


def to_jpeg_bytes(img: Image.Image, quality: int = 90) -> bytes:
    buf = io.BytesIO()
    img.convert("RGB").save(buf, format="JPEG", quality=quality)
    return buf.getvalue()
