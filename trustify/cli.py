# trustify/cli.py

"""
Command-line entry points.

    trustify-server                     run the API with uvicorn
    trustify-scan photo.jpg --brand X   analyse one image offline
    trustify-live --camera 0            print live OCR results
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from trustify import config

logger = logging.getLogger("trustify")


def serve(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the Trustify API server")
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=config.PORT)
    args = parser.parse_args(argv)

    import uvicorn

    logger.info("Server listening on port %s", args.port)
    uvicorn.run("trustify.main:app", host=args.host, port=args.port)
    return 0


def scan(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Analyse a product photo (OCR + QR + score)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    trustify-scan photo.jpg --name Demo --brand Trustify
    trustify-scan photo.jpg --gtin 8851234567890 --pdf report.pdf --json
        """,
    )
    parser.add_argument("image", type=str, help="Image file to analyse")
    parser.add_argument("--name", default=None)
    parser.add_argument("--brand", default=None)
    parser.add_argument("--gtin", default=None)
    parser.add_argument("--batch", default=None)
    parser.add_argument("--pdf", default=None, help="Write the PDF report to this path")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    parser.add_argument(
        "--no-gallery",
        action="store_true",
        help="Skip comparing against stored reference images in UPLOAD_DIR",
    )
    args = parser.parse_args(argv)

    from trustify.scanner import analyze_image, report_from_result, to_public
    from trustify.storage import get_store

    path = Path(args.image)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    item = {k: v for k, v in (("name", args.name), ("brand", args.brand), ("gtin", args.gtin), ("batch", args.batch)) if v}
    if args.no_gallery:
        store, upload_dir = None, None
    else:
        store, upload_dir = get_store(), config.UPLOAD_DIR
    result = analyze_image(path.read_bytes(), item, store, upload_dir)

    if args.json:
        print(json.dumps(to_public(result, preview=False), indent=2, ensure_ascii=False))
    else:
        ai = result["ai"]
        suggested = result["suggested"]
        print(f"AI: {ai['label']} ({ai['confidence']}%)")
        print(f"Suggested GTIN: {suggested['gtin'] or '-'} / Batch: {suggested['batch'] or '-'}")
        best = result["similarity"]["best"]
        if best:
            print(f"Best gallery match: {best['similarity']}% ({best['url']})")
        for line in result["breakdown"]:
            sign = "+" if line["delta"] > 0 else ""
            print(f"  {line['reason']:<24} {sign}{line['delta']}")

    if args.pdf:
        Path(args.pdf).write_bytes(report_from_result(result, item))
        print(f"Report written to {args.pdf}")
    return 0 if result["ok"] else 2


def live(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Live OCR from a camera")
    parser.add_argument("--camera", type=int, default=0)
    parser.add_argument("--brand", default=None, help="Brand name to look for")
    parser.add_argument("--interval", type=float, default=0.9)
    args = parser.parse_args(argv)

    from trustify.scanner import LiveOCR

    def on_result(res):
        if res["gtins"]:
            print(f"GTIN: {res['gtins'][0]} (conf {res['conf']}) | {res['text']}")
        else:
            print(f"scanning... ({res['conf']}) | {res['text']}")

    ocr = LiveOCR(camera=args.camera, brand=args.brand, interval=args.interval)
    try:
        ocr.start(on_result)
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    try:
        while ocr.running:
            time.sleep(0.2)
    except KeyboardInterrupt:
        pass
    finally:
        ocr.stop()
    return 0


def _run(fn) -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    sys.exit(fn())


def main_server() -> None:
    _run(serve)


def main_scan() -> None:
    _run(scan)


def main_live() -> None:
    _run(live)
