import cv2
import numpy as np

from trustify.scanner.codes import _corner_box, decode_codes
from tests.helpers import image_bytes, make_image


def qr_png(text: str) -> bytes:
    encoder = cv2.QRCodeEncoder.create()
    qr = encoder.encode(text)
    qr = cv2.resize(qr, None, fx=8, fy=8, interpolation=cv2.INTER_NEAREST)
    qr = cv2.copyMakeBorder(qr, 40, 40, 40, 40, cv2.BORDER_CONSTANT, value=255)
    ok, buf = cv2.imencode(".png", cv2.cvtColor(qr, cv2.COLOR_GRAY2BGR))
    assert ok
    return buf.tobytes()


def test_corner_box():
    pts = np.array([[[10, 20], [110, 22], [112, 118], [8, 120]]], dtype=np.float32)
    assert _corner_box(pts) == {"x": 8, "y": 20, "w": 100, "h": 100}


def test_decodes_qr():
    res = decode_codes(qr_png("https://trustify.example/p/8851234567890"))
    assert res["ok"] is True
    assert res["qr"]["text"] == "https://trustify.example/p/8851234567890"
    assert res["qr"]["format"] == "QR"
    assert res["qr"]["box"]["w"] > 0
    assert res["image"] is not None


def test_no_code_in_plain_image():
    res = decode_codes(image_bytes(make_image()))
    assert res["ok"] is True
    assert res["qr"] is None


def test_garbage_bytes_degrade():
    assert decode_codes(b"definitely not an image") == {"ok": False, "qr": None, "barcodes": [], "image": None}
