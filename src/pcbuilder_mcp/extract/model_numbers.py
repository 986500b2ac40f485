"""Model number detection for PC part titles."""

import re

# Order matters: product-line patterns first, the generic alphanumeric last
MODEL_PATTERNS = [
    # Intel Core: i7-13700K, i5 12400F, Core Ultra 7 265K
    re.compile(r"\b(i[3579][-\s]\d{4,5}[A-Z]{0,3})\b", re.IGNORECASE),
    re.compile(r"\b(Ultra\s[3579]\s\d{3}[A-Z]{0,2})\b", re.IGNORECASE),
    # AMD Ryzen: Ryzen 7 7800X3D, Ryzen 5 5600
    re.compile(r"\b(Ryzen\s[3579]\s\d{4}[A-Z0-9]{0,3})\b", re.IGNORECASE),
    # GPUs: RTX 4070 Ti Super, RX 7800 XT, GTX 1650
    re.compile(r"\b((?:RTX|GTX|RX)\s?\d{3,4}(?:\s(?:Ti|Super|XTX|XT|GRE))*)\b", re.IGNORECASE),
    # Generic part numbers: RM850x, CT1000P3, B650M
    re.compile(r"\b([A-Z]{1,5}\d{1,5}[A-Za-z0-9]*(?:-[A-Z0-9]+)?)\b"),
]

# Tokens the generic pattern picks up that are specs, not model numbers
_SPEC_LIKE = re.compile(
    r"^(?:G?DDR\d+X?|LGA\d+|AM\d\+?|M\d|PCIE\d*|USB\d*|RGB|ATX|SATA\d*|TB\d*|X\d+|V\d+)$",
    re.IGNORECASE,
)


def extract_model(title: str) -> str | None:
    """Extract a likely model number from a title, or None."""
    if not title:
        return None
    for pattern in MODEL_PATTERNS:
        for match in pattern.finditer(title):
            model = match.group(1)
            if _SPEC_LIKE.match(model):
                continue
            return re.sub(r"\s+", " ", model).strip()
    return None
