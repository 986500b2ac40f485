"""Typed access to a component's open-ended specification bag.

Marketplace data is unstructured, so ``specifications`` is a plain mapping whose
keys vary per category. The keys the compatibility rules depend on are read
through the accessors below, which return None for anything absent or
unparsable rather than raising. Unknown is never incompatible.
"""

import re
from typing import Any, Mapping

# Keys read by the compatibility rules
SOCKET = "socket"
MEMORY_TYPE = "memoryType"
TDP = "tdp"
WATTAGE = "wattage"
RECOMMENDED_PSU = "recommendedPSU"
MAX_GPU_LENGTH = "maxGpuLength"
LENGTH = "length"
TDP_RATING = "tdpRating"
CHIPSET = "chipset"
MEMORY = "memory"
CAPACITY = "capacity"
MAX_RAM = "maxRam"
FORM_FACTOR = "formFactor"
MOTHERBOARD_SUPPORT = "motherboardSupport"

SpecBag = Mapping[str, Any]

_NON_DIGIT = re.compile(r"[^\d]")
_MEMORY_SIZE = re.compile(r"(\d+(?:\.\d+)?)\s*(tb|gb)?", re.IGNORECASE)
_LIST_SEPARATORS = re.compile(r"[/,]")


def spec_text(specs: SpecBag | None, key: str) -> str | None:
    """String value for key, stripped. None if absent, empty or not text-like."""
    if not specs:
        return None
    value = specs.get(key)
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def parse_number(value: Any) -> int | None:
    """Parse a numeric spec like '125W', '650 W' or 125 into an int.

    Non-digit characters are stripped before parsing, so decimals lose their
    point ("3.5" -> 35); spec numbers used by the rules are whole watts and
    millimetres. Returns None when nothing numeric is left.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value))
    digits = _NON_DIGIT.sub("", str(value))
    if not digits:
        return None
    return int(digits)


def spec_number(specs: SpecBag | None, key: str) -> int | None:
    """Numeric value for key, or None if absent or unparsable."""
    if not specs:
        return None
    return parse_number(specs.get(key))



def spec_values(specs: SpecBag | None, key: str) -> list[str] | None:
    """A multi-valued spec as a list: ["AM4", "AM5"] or "DDR4/DDR5" or "ATX, Micro-ATX".

    None if absent or empty.
    """
    if not specs:
        return None
    value = specs.get(key)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (list, tuple, set)):
        items = [str(v).strip() for v in value if v is not None and not isinstance(v, bool)]
    else:
        items = [part.strip() for part in _LIST_SEPARATORS.split(str(value))]
    items = [item for item in items if item]
    return items or None


def parse_memory_gb(value: Any) -> int | None:
    """Memory size in GB from '32GB', '2 TB', '64' or 32. None if unparsable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _MEMORY_SIZE.search(str(value))
    if not match:
        return None
    size = float(match.group(1))
    if (match.group(2) or "").lower() == "tb":
        size *= 1024
    return int(size)
