# trustify/scanner/phash.py

"""
Average-hash (aHash) fingerprints and their Hamming similarity.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np
from PIL import Image

GRAY_WEIGHTS = np.array([0.299, 0.587, 0.114])


def average_hash(img: Image.Image, size: int = 32) -> List[int]:
    """size*size bits: 1 where the grayscale pixel is >= the mean."""
    small = img.convert("RGB").resize((size, size), Image.BILINEAR)
    rgb = np.asarray(small, dtype=float)
    gray = rgb @ GRAY_WEIGHTS
    avg = gray.mean()
    return (gray >= avg).astype(int).ravel().tolist()


def hamming_distance(a: Sequence[int], b: Sequence[int]) -> int:
    n = min(len(a), len(b))
    d = sum(1 for i in range(n) if a[i] != b[i])
    return d + abs(len(a) - len(b))


def similarity_percent(a: Sequence[int], b: Sequence[int]) -> int:
    n = max(len(a), len(b))
    if not n:
        return 0
    return round(100 * (1 - hamming_distance(a, b) / n))
