from trustify.scanner.scoring import (
    COUNTERFEIT,
    LIKELY_GENUINE,
    UNCERTAIN,
    apply_similarity_bonus,
    label_for,
    score_with_breakdown,
)

FULL_ITEM = {
    "name": "Vitamin C",
    "brand": "Trustify",
    "gtin": "8851234567890",
    "batch": "AB123",
    "status": "verified",
    "trust_score": 95,
}
OCR_TEXT = "TRUSTIFY vitamin c 8851234567890 lot ab123"


def reasons(result):
    return [line["reason"] for line in result["breakdown"]]


class TestScoreWithBreakdown:
    def test_base_only_is_counterfeit(self):
        res = score_with_breakdown({}, "", {})
        assert res == {
            "confidence": 40,
            "label": COUNTERFEIT,
            "breakdown": [{"reason": "base", "delta": 40}],
        }

    def test_every_signal_is_clamped_to_99(self):
        res = score_with_breakdown(FULL_ITEM, OCR_TEXT, {"qr": {"text": "https://x"}})
        assert res["confidence"] == 99
        assert res["label"] == LIKELY_GENUINE
        assert reasons(res) == [
            "base",
            "brand-hit",
            "name-hit",
            "gtin-hit",
            "batch-hit",
            "qr-found",
            "status-verified",
            "high-trust",
        ]

    def test_brand_and_name_is_uncertain(self):
        res = score_with_breakdown({"brand": "Trustify", "name": "Vitamin C"}, OCR_TEXT)
        assert res["confidence"] == 65
        assert res["label"] == UNCERTAIN

    def test_gtin_match_is_exact(self):
        res = score_with_breakdown({"gtin": "8851234567890"}, "885123456789 0")
        assert "gtin-hit" not in reasons(res)

    def test_empty_qr_text_does_not_count(self):
        res = score_with_breakdown({}, "", {"qr": {"text": ""}})
        assert "qr-found" not in reasons(res)

    def test_trust_score_threshold(self):
        assert "high-trust" not in reasons(score_with_breakdown({"trust_score": 89}))
        assert "high-trust" in reasons(score_with_breakdown({"trust_score": "90"}))


def test_label_boundaries():
    assert label_for(85) == LIKELY_GENUINE
    assert label_for(84) == UNCERTAIN
    assert label_for(56) == UNCERTAIN
    assert label_for(55) == COUNTERFEIT


class TestSimilarityBonus:
    def test_bonus_promotes_label(self):
        scored = {"confidence": 80, "label": UNCERTAIN, "breakdown": []}
        apply_similarity_bonus(scored, {"best": {"similarity": 90}})
        assert scored["confidence"] == 85
        assert scored["label"] == LIKELY_GENUINE
        assert scored["breakdown"] == [{"reason": "image-similarity>85%", "delta": 5}]

    def test_no_bonus_without_headroom(self):
        scored = {"confidence": 95, "label": LIKELY_GENUINE, "breakdown": []}
        apply_similarity_bonus(scored, {"best": {"similarity": 100}})
        assert scored["confidence"] == 95

    def test_no_bonus_below_threshold(self):
        scored = {"confidence": 60, "label": UNCERTAIN, "breakdown": []}
        apply_similarity_bonus(scored, {"best": {"similarity": 84}})
        assert scored["confidence"] == 60

    def test_no_best_match(self):
        scored = {"confidence": 60, "label": UNCERTAIN, "breakdown": []}
        apply_similarity_bonus(scored, {"ok": True, "best": None, "list": []})
        assert scored["breakdown"] == []
