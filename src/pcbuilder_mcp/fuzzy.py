"""Name similarity used to decide whether two listings are the same physical part."""

import re

from rapidfuzz.distance import Levenshtein

from .config import FUZZY_MATCH_THRESHOLD

_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str | None) -> str:
    """Normalize a part name for matching: lowercase, punctuation to spaces, collapse spaces.

    "Intel Core i7-13700K" and "intel core i7 13700k" both become
    "intel core i7 13700k".
    """
    if not name:
        return ""
    normalized = _PUNCTUATION.sub(" ", name.lower())
    return _WHITESPACE.sub(" ", normalized).strip()


def levenshtein(a: str, b: str) -> int:
    """Edit distance (insert/delete/substitute, unit cost) between two strings."""
    return Levenshtein.distance(a, b)


def similarity(a: str | None, b: str | None) -> float:
    """Score in [0, 1]: 1 - distance / max(len) over normalized names.

    Two empty names score 0.0; an empty name never matches anything.
    Symmetric in its arguments.
    """
    left = normalize_name(a)
    right = normalize_name(b)
    longest = max(len(left), len(right))
    if longest == 0:
        return 0.0
    return 1.0 - levenshtein(left, right) / longest


def is_same_part(a: str | None, b: str | None, threshold: float = FUZZY_MATCH_THRESHOLD) -> bool:
    return similarity(a, b) >= threshold
