# trustify/scanner/highlight.py

from __future__ import annotations

import html
import re
from typing import List, Optional, Tuple

from .candidates import RE_GTIN


def highlight_matches(
    text: str,
    gtin: Optional[str] = None,
    brand: Optional[str] = None,
    batch: Optional[str] = None,
) -> str:
    """
    HTML-escape OCR text and wrap hits in <mark data-hit="...">.

    Tokens are tried in priority order gtin, brand, batch, gtin-candidate;
    a span already claimed by an earlier token is not marked again.
    """
    if not text:
        return ""

    tokens: List[Tuple[str, re.Pattern]] = []
    if gtin:
        tokens.append(("gtin", re.compile(re.escape(str(gtin)))))
    if brand:
        tokens.append(("brand", re.compile(re.escape(str(brand)), re.IGNORECASE)))
    if batch:
        tokens.append(("batch", re.compile(re.escape(str(batch)), re.IGNORECASE)))
    tokens.append(("gtin-candidate", RE_GTIN))

    spans: List[Tuple[int, int, str]] = []
    for key, pattern in tokens:
        for m in pattern.finditer(text):
            start, end = m.span()
            if start == end:
                continue
            if any(start < e and s < end for s, e, _ in spans):
                continue
            spans.append((start, end, key))
    spans.sort()

    out = []
    pos = 0
    for start, end, key in spans:
        out.append(html.escape(text[pos:start]))
        out.append(f'<mark data-hit="{key}">{html.escape(text[start:end])}</mark>')
        pos = end
    out.append(html.escape(text[pos:]))
    return "".join(out)
