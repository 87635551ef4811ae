import threading

import numpy as np
import pytest

from trustify.scanner.live import LiveOCR, crop_middle_band, scale_to_width


class FakeCapture:
    def __init__(self, opened=True):
        self.opened = opened
        self.released = False
        self.reads = 0

    def isOpened(self):
        return self.opened

    def read(self):
        self.reads += 1
        return True, np.zeros((480, 640, 3), dtype=np.uint8)

    def release(self):
        self.released = True


def test_crop_middle_band():
    frame = np.zeros((400, 300, 3), dtype=np.uint8)
    assert crop_middle_band(frame).shape == (200, 300, 3)


def test_scale_to_width_keeps_aspect():
    frame = np.zeros((200, 1280, 3), dtype=np.uint8)
    assert scale_to_width(frame, 640).shape == (100, 640, 3)


def test_process_frame_reports_gtins_and_brand(monkeypatch):
    ocr = LiveOCR(brand="Trustify", capture_factory=lambda _: FakeCapture())
    seen = {}

    def fake_recognize(frame):
        seen["shape"] = frame.shape
        return {"text": "TRUSTIFY 8851234567890 111111111111 222222222222 333333333333", "conf": 81}

    monkeypatch.setattr(ocr, "recognize", fake_recognize)
    res = ocr.process_frame(np.zeros((480, 640, 3), dtype=np.uint8))

    assert seen["shape"] == (240, 640, 3)
    assert res["gtins"] == ["8851234567890", "111111111111", "222222222222"]
    assert res["brand_hits"] == ["trustify"]
    assert res["conf"] == 81


def test_no_brand_configured(monkeypatch):
    ocr = LiveOCR(capture_factory=lambda _: FakeCapture())
    monkeypatch.setattr(ocr, "recognize", lambda frame: {"text": "hello", "conf": 10})
    res = ocr.process_frame(np.zeros((480, 640, 3), dtype=np.uint8))
    assert res == {"text": "hello", "gtins": [], "brand_hits": [], "conf": 10}


def test_start_ticks_and_stop_releases(monkeypatch):
    capture = FakeCapture()
    ocr = LiveOCR(interval=0.01, capture_factory=lambda _: capture)
    monkeypatch.setattr(ocr, "recognize", lambda frame: {"text": "8851234567890", "conf": 90})
    got = threading.Event()
    results = []

    def on_result(res):
        results.append(res)
        got.set()

    ocr.start(on_result)
    ocr.start(on_result)  # already running
    assert ocr.running
    assert got.wait(5)
    ocr.stop()

    assert not ocr.running
    assert capture.released
    assert results[0]["gtins"] == ["8851234567890"]


def test_ocr_errors_keep_loop_alive(monkeypatch):
    capture = FakeCapture()
    ocr = LiveOCR(interval=0.01, capture_factory=lambda _: capture)
    calls = {"n": 0}
    got = threading.Event()

    def flaky(frame):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("tesseract hiccup")
        return {"text": "ok", "conf": 50}

    monkeypatch.setattr(ocr, "recognize", flaky)
    ocr.start(lambda res: got.set())
    assert got.wait(5)
    ocr.stop()
    assert calls["n"] >= 2


def test_unopened_camera_raises():
    ocr = LiveOCR(capture_factory=lambda _: FakeCapture(opened=False))
    with pytest.raises(RuntimeError):
        ocr.start()
    assert not ocr.running


def test_callback_errors_keep_loop_alive(monkeypatch):
    capture = FakeCapture()
    ocr = LiveOCR(interval=0.01, capture_factory=lambda _: capture)
    monkeypatch.setattr(ocr, "recognize", lambda frame: {"text": "ok", "conf": 50})
    calls = {"n": 0}
    got = threading.Event()

    def on_result(res):
        calls["n"] += 1
        if calls["n"] == 1:
            raise ValueError("bad consumer")
        got.set()

    ocr.start(on_result)
    try:
        assert got.wait(5)
        assert ocr._thread.is_alive()
    finally:
        ocr.stop()
    assert calls["n"] >= 2


def test_camera_read_errors_keep_loop_alive(monkeypatch):
    capture = FakeCapture()
    real_read = capture.read
    state = {"failed": False}

    def flaky_read():
        if not state["failed"]:
            state["failed"] = True
            raise OSError("camera unplugged")
        return real_read()

    capture.read = flaky_read
    ocr = LiveOCR(interval=0.01, capture_factory=lambda _: capture)
    monkeypatch.setattr(ocr, "recognize", lambda frame: {"text": "ok", "conf": 50})
    got = threading.Event()

    ocr.start(lambda res: got.set())
    try:
        assert got.wait(5)
    finally:
        ocr.stop()
    assert state["failed"]


def test_restart_refused_while_old_thread_lingers(monkeypatch):
    release = threading.Event()
    entered = threading.Event()

    def stuck_recognize(frame):
        entered.set()
        release.wait(5)
        return {"text": "", "conf": 0}

    ocr = LiveOCR(interval=0.01, capture_factory=lambda _: FakeCapture())
    monkeypatch.setattr(ocr, "recognize", stuck_recognize)
    ocr.start()
    assert entered.wait(5)
    ocr.stop()  # join times out while recognize is blocked

    try:
        with pytest.raises(RuntimeError):
            ocr.start()
    finally:
        release.set()
        ocr._thread.join(5)
    assert not ocr._thread.is_alive()


def test_thai_digits_not_reported_as_gtins(monkeypatch):
    ocr = LiveOCR(capture_factory=lambda _: FakeCapture())
    thai = "๘๘๕๑๒๓๔๕๖๗๘๙๐"
    monkeypatch.setattr(ocr, "recognize", lambda frame: {"text": f"{thai} 8851234567890", "conf": 70})
    res = ocr.process_frame(np.zeros((480, 640, 3), dtype=np.uint8))
    assert res["gtins"] == ["8851234567890"]
