from datetime import datetime

from trustify.scanner.report import IMAGE_TOP, PAGE_BOTTOM, generate_pdf_report, image_box, report_from_result
from tests.helpers import make_image


def test_pdf_with_everything():
    pdf = generate_pdf_report(
        item={"name": "Vitamin C", "brand": "Trustify", "gtin": "8851234567890", "batch": "AB123"},
        ocr_text="lorem ipsum " * 800,
        decoded={"qr": {"text": "https://trustify.example/p/1"}, "barcodes": [{"text": "8851234567890"}]},
        breakdown=[{"reason": "base", "delta": 40}, {"reason": "brand-hit", "delta": 15}],
        ai={"label": "uncertain", "confidence": 55},
        image=make_image(800, 1200),
        generated_at=datetime(2026, 1, 1, 12, 0, 0),
    )
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 10_000


def test_pdf_minimal():
    pdf = generate_pdf_report(item=None, ocr_text="", decoded=None, breakdown=[], ai={"label": "counterfeit", "confidence": 40})
    assert pdf.startswith(b"%PDF")
    assert pdf.rstrip().endswith(b"%%EOF")


def test_report_from_result():
    result = {
        "ocr_text": "hello",
        "decoded": {"qr": None, "barcodes": []},
        "breakdown": [{"reason": "base", "delta": 40}],
        "ai": {"label": "counterfeit", "confidence": 40},
        "image": None,
    }
    assert report_from_result(result, {"name": "X"}).startswith(b"%PDF")


def test_image_box_uses_content_width():
    assert image_box(800, 400) == (515.0, 257.5)


def test_tall_image_box_fits_one_page():
    w, h = image_box(800, 1200)
    assert h == PAGE_BOTTOM - IMAGE_TOP
    assert abs(w / h - 800 / 1200) < 1e-9
