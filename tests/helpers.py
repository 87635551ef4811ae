import io

import numpy as np
from PIL import Image


def make_image(width: int = 320, height: int = 240, seed: int = 0) -> Image.Image:
    """Deterministic gradient + noise RGB image."""
    rng = np.random.default_rng(seed)
    x = np.linspace(0, 255, width)
    y = np.linspace(0, 255, height)[:, None]
    base = (x[None, :] * 0.6 + y * 0.4).astype(np.uint8)
    noise = rng.integers(0, 30, size=(height, width), dtype=np.uint8)
    gray = np.clip(base.astype(int) + noise, 0, 255).astype(np.uint8)
    rgb = np.stack([gray, np.flipud(gray), gray[:, ::-1]], axis=-1)
    return Image.fromarray(rgb, "RGB")


def image_bytes(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()
