# trustify/scanner/live.py

"""
Live OCR over a camera feed.

A background timer grabs a frame every `interval` seconds, crops the middle
band of the picture, scales it to `max_w` pixels wide and runs a restricted
Tesseract pass. Each tick reports:

    {"text": str, "gtins": [str, ...], "brand_hits": [str], "conf": int}
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Callable, Dict, List, Optional

import cv2
import numpy as np
import pytesseract

from trustify import config
from .ocr import collapse_whitespace

logger = logging.getLogger("trustify")

WHITELIST = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_/."
RE_LIVE_GTIN = re.compile(r"\b\d{12,14}\b", re.ASCII)

ResultCallback = Callable[[Dict[str, Any]], None]


def crop_middle_band(frame: np.ndarray) -> np.ndarray:
    """Keep the full width and the vertical 25%-75% band."""
    h = frame.shape[0]
    top = max(0, int(h * 0.25))
    bottom = min(h, top + int(h * 0.5))
    return frame[top:bottom, :]


def scale_to_width(frame: np.ndarray, target_w: int) -> np.ndarray:
    h, w = frame.shape[:2]
    ratio = target_w / float(w)
    size = (max(1, round(w * ratio)), max(1, round(h * ratio)))
    return cv2.resize(frame, size, interpolation=cv2.INTER_AREA if ratio < 1 else cv2.INTER_LINEAR)


class LiveOCR:
    """Periodic frame-capture OCR. Stop with stop(); start() is idempotent."""

    def __init__(
        self,
        camera: int = 0,
        brand: Optional[str] = None,
        interval: float = 0.9,
        max_w: int = 640,
        lang: Optional[str] = None,
        capture_factory: Callable[[int], Any] = cv2.VideoCapture,
    ) -> None:
        self.camera = camera
        self.brand = (brand or "").lower()
        self.interval = interval
        self.max_w = max_w
        self.lang = lang or config.OCR_LANG
        self._capture_factory = capture_factory
        self._capture = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def init(self) -> None:
        if self._capture is not None:
            return
        capture = self._capture_factory(self.camera)
        if hasattr(capture, "isOpened") and not capture.isOpened():
            raise RuntimeError(f"Camera {self.camera} could not be opened.")
        self._capture = capture

    def recognize(self, frame: np.ndarray) -> Dict[str, Any]:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        data = pytesseract.image_to_data(
            rgb,
            lang=self.lang,
            config=f"-c tessedit_char_whitelist={WHITELIST} -c preserve_interword_spaces=1",
            output_type=pytesseract.Output.DICT,
        )
        words = [w for w in data.get("text", []) if w and w.strip()]
        confs = [float(c) for c in data.get("conf", []) if float(c) >= 0]
        conf = round(sum(confs) / len(confs)) if confs else 0
        return {"text": collapse_whitespace(" ".join(words)), "conf": conf}

    def process_frame(self, frame: np.ndarray) -> Dict[str, Any]:
        roi = scale_to_width(crop_middle_band(frame), self.max_w)
        recognized = self.recognize(roi)
        text = recognized["text"]
        gtins: List[str] = RE_LIVE_GTIN.findall(text)[:3]
        brand_hits = [self.brand] if self.brand and self.brand in text.lower() else []
        return {"text": text, "gtins": gtins, "brand_hits": brand_hits, "conf": recognized["conf"]}

    def _tick(self, on_result: Optional[ResultCallback]) -> None:
        try:
            ok, frame = self._capture.read()
            if not ok or frame is None:
                logger.warning("live ocr: no frame from camera %s", self.camera)
                return
            result = self.process_frame(frame)
            if on_result:
                on_result(result)
        except Exception as exc:
            logger.warning("live ocr error: %s", exc)

    def _loop(self, stop: threading.Event, on_result: Optional[ResultCallback]) -> None:
        while not stop.wait(self.interval):
            self._tick(on_result)

    def start(self, on_result: Optional[ResultCallback] = None) -> None:
        if self._running:
            return
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("Previous live OCR run is still stopping.")
        self.init()
        self._running = True
        # fresh event per run
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, args=(self._stop, on_result), name="live-ocr", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._running = False
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval * 2 + 1)
        if self._thread is not None and not self._thread.is_alive():
            self._thread = None
        if self._capture is not None:
            self._capture.release()
            self._capture = None
