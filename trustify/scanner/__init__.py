# trustify/scanner/__init__.py

"""
Scan-and-score pipeline.

Exposes a high-level function:

    analyze_image(image_bytes: bytes, item: dict | None, store, upload_dir) -> dict

which:
- Runs Tesseract OCR and QR / barcode decoding in parallel
- Extracts GTIN and batch candidates from the OCR text
- Scores the evidence with a fixed point rubric
- Compares the photo with the product's reference images (aHash)
- Draws detected code boxes on the analysed image

PDF reports come from generate_pdf_report(); LiveOCR scans a camera feed.
"""

from .engine import analyze_image, to_public
from .live import LiveOCR
from .report import generate_pdf_report, report_from_result
from .scoring import score_with_breakdown

__all__ = [
    "analyze_image",
    "to_public",
    "LiveOCR",
    "generate_pdf_report",
    "report_from_result",
    "score_with_breakdown",
]
