# trustify/scanner/report.py

"""
PDF scan report rendered with ReportLab.

Layout is in points on A4, measured from the top of the page:
title, product info, AI result + breakdown, detected codes,
raw OCR text and finally the analysed image.
"""

from __future__ import annotations

import io
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

PAGE_W, PAGE_H = A4
LEFT = 40
RIGHT = 555
CONTENT_W = 515
PAGE_BOTTOM = 780
IMAGE_TOP = 60  # heading offset on a fresh page


class _Page:
    """Top-down cursor over a ReportLab canvas."""

    def __init__(self, pdf: canvas.Canvas) -> None:
        self.pdf = pdf

    def text(self, x: float, y: float, value: str, font: str = "Helvetica", size: float = 11) -> None:
        self.pdf.setFont(font, size)
        self.pdf.drawString(x, PAGE_H - y, value)

    def rule(self, y: float) -> None:
        self.pdf.setStrokeGray(220 / 255.0)
        self.pdf.line(LEFT, PAGE_H - y, RIGHT, PAGE_H - y)

    def heading(self, y: float, value: str) -> None:
        self.text(LEFT, y, value, "Helvetica-Bold", 13)


def image_box(width: int, height: int) -> Tuple[float, float]:
    """Content-width size for an image, shrunk to fit a fresh page if taller."""
    img_w = float(CONTENT_W)
    img_h = height * (img_w / float(width))
    max_h = PAGE_BOTTOM - IMAGE_TOP
    if img_h > max_h:
        img_w *= max_h / img_h
        img_h = float(max_h)
    return img_w, img_h


def _signed(delta: int) -> str:
    return f"+{delta}" if delta > 0 else str(delta)


def generate_pdf_report(
    item: Optional[Dict[str, Any]],
    ocr_text: str,
    decoded: Optional[Dict[str, Any]],
    breakdown: List[Dict[str, Any]],
    ai: Dict[str, Any],
    image: Optional[Image.Image] = None,
    generated_at: Optional[datetime] = None,
) -> bytes:
    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=A4)
    pdf.setTitle("Trustify Scan Report")
    page = _Page(pdf)

    # Title
    page.text(LEFT, 50, "Trustify Scan Report", "Helvetica-Bold", 18)
    stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    page.text(LEFT, 70, f"Generated: {stamp}")
    page.rule(80)

    # Product
    p = item or {}
    page.heading(105, "Product Info")
    page.text(LEFT, 125, f"Name: {p.get('name') or '-'}")
    page.text(LEFT, 142, f"Brand: {p.get('brand') or '-'}")
    page.text(300, 125, f"GTIN: {p.get('gtin') or '-'}")
    page.text(300, 142, f"Batch: {p.get('batch') or '-'}")
    page.rule(160)

    # AI result
    page.heading(185, "AI Result")
    page.text(LEFT, 205, f"Label: {ai.get('label')}  |  Confidence: {ai.get('confidence')}%", size=12)
    y = 225
    for line in breakdown:
        page.text(50, y, f"• {line['reason']}  ({_signed(line['delta'])})")
        y += 16
    page.rule(y + 6)
    y += 20

    # Codes
    decoded = decoded or {}
    page.heading(y, "Detected Codes")
    y += 20
    qr = decoded.get("qr") or {}
    if qr.get("text"):
        page.text(LEFT, y, f"QR: {qr['text']}")
        y += 16
    barcodes = decoded.get("barcodes") or []
    if barcodes:
        page.text(LEFT, y, "Barcodes: " + ", ".join(b.get("text", "") for b in barcodes))
        y += 16
    page.rule(y + 6)
    y += 20

    # OCR text
    page.heading(y, "OCR Text (raw)")
    y += 18
    for chunk in simpleSplit(ocr_text or "(empty)", "Helvetica", 10, CONTENT_W):
        if y > PAGE_BOTTOM:
            pdf.showPage()
            y = 50
        page.text(LEFT, y, chunk, size=10)
        y += 12
    y += 10
    page.rule(y + 6)
    y += 20

    # Image
    if image is not None:
        img_w, img_h = image_box(image.width, image.height)
        if y + 10 + img_h > PAGE_BOTTOM:
            pdf.showPage()
            y = 50
        page.heading(y, "Analyzed Image")
        y += 10
        pdf.drawImage(ImageReader(image.convert("RGB")), LEFT, PAGE_H - y - img_h, width=img_w, height=img_h)

    pdf.showPage()
    pdf.save()
    return buf.getvalue()


def report_from_result(result: Dict[str, Any], item: Optional[Dict[str, Any]] = None) -> bytes:
    """Render the PDF for an analyze_image() result."""
    return generate_pdf_report(
        item=item,
        ocr_text=result.get("ocr_text", ""),
        decoded=result.get("decoded"),
        breakdown=result.get("breakdown", []),
        ai=result.get("ai", {}),
        image=result.get("image"),
    )
