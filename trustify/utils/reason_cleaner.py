# trustify/utils/reason_cleaner.py

"""
Plain-English wording for scan breakdown reasons.
Turns rubric codes like "gtin-hit" into sentences a shopper can read.
"""

import re

FRIENDLY_MAP = [
    (r"base", lambda m:
        "Every scan starts from a neutral baseline."
    ),
    (r"brand-hit", lambda m:
        "The brand name printed on the package matches our records."
    ),
    (r"name-hit", lambda m:
        "The product name printed on the package matches our records."
    ),
    (r"gtin-hit", lambda m:
        "The barcode number (GTIN) on the package matches the registered product."
    ),
    (r"batch-hit", lambda m:
        "The batch / lot number on the package matches the registered batch."
    ),
    (r"qr-found", lambda m:
        "A readable QR code was found on the package."
    ),
    (r"status-verified", lambda m:
        "This product has been verified by the brand owner."
    ),
    (r"high-trust", lambda m:
        "This product has a strong trust history."
    ),
    (r"image-similarity>(\d+)%", lambda m:
        f"The photo looks more than {m.group(1)}% similar to the brand's reference images."
    ),
]


def clean_reason(reason: str) -> str:
    """Return a human-friendly explanation for a single raw reason."""
    for pattern, handler in FRIENDLY_MAP:
        match = re.fullmatch(pattern, reason, flags=re.IGNORECASE)
        if match:
            return handler(match)

    # fallback: return unchanged if no pattern matches
    return reason


def clean_reasons(breakdown):
    """Explain every breakdown line, keeping the order."""
    return [clean_reason(line["reason"]) for line in breakdown]
