# trustify/scanner/scoring.py

"""
Fixed point rubric turning OCR/QR evidence into an authenticity confidence.

    base            +40
    brand-hit       +15   brand found in OCR text (case-insensitive)
    name-hit        +10   product name found (case-insensitive)
    gtin-hit        +20   GTIN found (exact)
    batch-hit        +5   batch found (case-insensitive)
    qr-found        +15   a QR code decoded
    status-verified +10   product status == "verified"
    high-trust      +10   product trust_score >= 90

Clamped to 1..99. Labels: >= 85 likely genuine, <= 55 counterfeit, else uncertain.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

LIKELY_GENUINE = "likely genuine"
COUNTERFEIT = "counterfeit"
UNCERTAIN = "uncertain"

SIMILARITY_THRESHOLD = 85
SIMILARITY_BONUS = 5


def label_for(score: int) -> str:
    if score >= 85:
        return LIKELY_GENUINE
    if score <= 55:
        return COUNTERFEIT
    return UNCERTAIN


def score_with_breakdown(
    item: Optional[Dict[str, Any]] = None,
    ocr_text: str = "",
    decoded: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    item = item or {}
    raw = ocr_text or ""
    t = raw.lower()
    lines: List[Dict[str, Any]] = []

    def hit(reason: str, delta: int) -> None:
        lines.append({"reason": reason, "delta": delta})

    hit("base", 40)
    if item.get("brand") and str(item["brand"]).lower() in t:
        hit("brand-hit", 15)
    if item.get("name") and str(item["name"]).lower() in t:
        hit("name-hit", 10)
    if item.get("gtin") and str(item["gtin"]) in raw:
        hit("gtin-hit", 20)
    if item.get("batch") and str(item["batch"]).lower() in t:
        hit("batch-hit", 5)
    qr = (decoded or {}).get("qr") or {}
    if qr.get("text"):
        hit("qr-found", 15)
    if item.get("status") == "verified":
        hit("status-verified", 10)
    try:
        trust = int(item.get("trust_score") or 0)
    except (TypeError, ValueError):
        trust = 0
    if trust >= 90:
        hit("high-trust", 10)

    score = sum(line["delta"] for line in lines)
    score = max(1, min(99, score))
    return {"confidence": score, "label": label_for(score), "breakdown": lines}


def apply_similarity_bonus(scored: Dict[str, Any], similarity: Dict[str, Any]) -> Dict[str, Any]:
    """+5 when the best gallery match is >= 85% and there is headroom (<= 94)."""
    best = (similarity or {}).get("best") or {}
    if best.get("similarity", 0) >= SIMILARITY_THRESHOLD and scored["confidence"] <= 94:
        scored["confidence"] += SIMILARITY_BONUS
        scored["breakdown"].append({"reason": "image-similarity>85%", "delta": SIMILARITY_BONUS})
        if scored["confidence"] >= 85 and scored["label"] != LIKELY_GENUINE:
            scored["label"] = LIKELY_GENUINE
    return scored
