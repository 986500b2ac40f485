"""Numeric and token spec extraction from product titles.

Each extractor looks for one attribute and returns it, or None when the title
does not state it. Nothing here raises on odd input.
"""

import re

# Clock speed: 5.4GHz, up to 4.7 GHz
_CLOCK = re.compile(r"(\d+(?:\.\d+)?)\s*ghz\b", re.IGNORECASE)

# Memory size: 32GB, 16 GB, 2TB (storage uses TB; RAM/GPU use GB)
_MEM_SIZE = re.compile(r"\b(\d+)\s*gb\b", re.IGNORECASE)

# Memory type: DDR4, DDR5 (but not the GDDR6 of graphics cards)
_MEM_TYPE = re.compile(r"(?<![a-z])(ddr\d)\b", re.IGNORECASE)

# Core count: 8 cores, 16-Core, 6 Core
_CORES = re.compile(r"\b(\d{1,3})[-\s]?cores?\b", re.IGNORECASE)

# Sockets: LGA1700, LGA 1851, AM5, AM4
_SOCKET_LGA = re.compile(r"\bLGA[\s-]?(\d{3,4})\b", re.IGNORECASE)
_SOCKET_AM = re.compile(r"\b(AM[2-5]\+?)(?![0-9A-Za-z])", re.IGNORECASE)

# Chipsets: B650, X670E, Z790, H610, A620 (a trailing M is the mATX form factor)
_CHIPSET = re.compile(r"\b([ABHQWXZ]\d{3}E?)M?\b")

# Wattage: 850W, 650 Watt, 1000 Watts
_WATTAGE = re.compile(r"\b(\d{3,4})\s*w(?:atts?)?\b", re.IGNORECASE)

# TDP: "125W TDP", "TDP 65W", "TDP: 250 W"
_TDP_AFTER = re.compile(r"\b(\d{2,3})\s*w\s*tdp\b", re.IGNORECASE)
_TDP_BEFORE = re.compile(r"\btdp\b[\s:]*(?:of\s*|up\s*to\s*)?(\d{2,3})\s*w\b", re.IGNORECASE)

# Lengths in millimetres: 336mm, 285 mm
_LENGTH_MM = re.compile(r"\b(\d{3})\s*mm\b", re.IGNORECASE)

# Form factors: ATX, E-ATX, Micro-ATX, mATX, M-ATX, Mini-ITX, ITX
_FORM_FACTOR = re.compile(
    r"\b(e-?atx|extended[\s-]atx|micro[\s-]?atx|m-?atx|mini[\s-]?itx|itx|atx)\b",
    re.IGNORECASE,
)

# Chipset with the mATX suffix: B650M, B760M-K
_CHIPSET_MATX = re.compile(r"\b[ABHQWXZ]\d{3}E?M\b")

# Board memory ceiling: "up to 192GB", "Max 128 GB", "maximum memory 64GB"
_MAX_MEMORY = re.compile(
    r"\b(?:up\s*to|max(?:imum)?(?:\s+memory)?)[\s:]*(\d{2,4})\s*gb\b",
    re.IGNORECASE,
)

# Case GPU clearance: "GPU up to 400mm", "max GPU length 360 mm", "VGA clearance 380mm"
_GPU_CLEARANCE = re.compile(
    r"\b(?:gpu|vga|graphics\s+card)\b[^0-9]{0,30}?(\d{3})\s*mm\b",
    re.IGNORECASE,
)


def extract_clock_speed(title: str) -> str | None:
    """Clock speed as '<n> GHz'."""
    match = _CLOCK.search(title or "")
    if match:
        return f"{match.group(1)} GHz"
    return None


def extract_memory_type(title: str) -> str | None:
    """DDR generation, upper-cased ('DDR5'). GDDR is ignored."""
    match = _MEM_TYPE.search(title or "")
    if match:
        return match.group(1).upper()
    return None


def extract_memory(title: str) -> tuple[str | None, str | None] | None:
    """Memory size and type, e.g. ('32GB', 'DDR5').

    The first size in the title wins, so kit titles like "32GB (2x16GB)"
    report the kit total. Returns None when neither part is present.
    """
    text = title or ""
    size_match = _MEM_SIZE.search(text)
    size = f"{size_match.group(1)}GB" if size_match else None
    memory_type = extract_memory_type(text)
    if size is None and memory_type is None:
        return None
    return size, memory_type


def extract_cores(title: str) -> int | None:
    match = _CORES.search(title or "")
    if match:
        return int(match.group(1))
    return None


def extract_socket(title: str) -> str | None:
    """CPU socket normalized to 'LGA1700' / 'AM5' form."""
    text = title or ""
    match = _SOCKET_LGA.search(text)
    if match:
        return f"LGA{match.group(1)}"
    match = _SOCKET_AM.search(text)
    if match:
        return match.group(1).upper()
    return None


def extract_chipset(title: str) -> str | None:
    match = _CHIPSET.search(title or "")
    if match:
        return match.group(1)
    return None


def extract_wattage(title: str) -> int | None:
    """Rated wattage (PSU output or a GPU's recommended PSU)."""
    match = _WATTAGE.search(title or "")
    if match:
        return int(match.group(1))
    return None


def extract_tdp(title: str) -> int | None:
    text = title or ""
    match = _TDP_AFTER.search(text) or _TDP_BEFORE.search(text)
    if match:
        return int(match.group(1))
    return None


def extract_length(title: str) -> int | None:
    """Physical length in mm (graphics cards list it as e.g. '285mm')."""
    match = _LENGTH_MM.search(title or "")
    if match:
        return int(match.group(1))
    return None


def extract_gpu_clearance(title: str) -> int | None:
    """Maximum graphics card length a case accepts, in mm."""
    match = _GPU_CLEARANCE.search(title or "")
    if match:
        return int(match.group(1))
    return None


# Largest first; a case that takes a board size takes every smaller one
FORM_FACTORS = ("E-ATX", "ATX", "Micro-ATX", "Mini-ITX")


def normalize_form_factor(value: str) -> str | None:
    """Canonical form factor name ('mATX' -> 'Micro-ATX'), None if unrecognized."""
    key = re.sub(r"[\s-]", "", (value or "").lower())
    if key in ("eatx", "extendedatx"):
        return "E-ATX"
    if key == "atx":
        return "ATX"
    if key in ("microatx", "matx", "uatx"):
        return "Micro-ATX"
    if key in ("miniitx", "itx"):
        return "Mini-ITX"
    return None


def extract_form_factor(title: str) -> str | None:
    """Motherboard form factor. A chipset ending in M ('B650M') means Micro-ATX."""
    text = title or ""
    match = _FORM_FACTOR.search(text)
    if match:
        return normalize_form_factor(match.group(1))
    if _CHIPSET_MATX.search(text):
        return "Micro-ATX"
    return None


def extract_supported_form_factors(title: str) -> list[str] | None:
    """Board sizes a case accepts: the largest named size and everything smaller."""
    found = [normalize_form_factor(m.group(1)) for m in _FORM_FACTOR.finditer(title or "")]
    ranks = [FORM_FACTORS.index(f) for f in found if f]
    if not ranks:
        return None
    return list(FORM_FACTORS[min(ranks):])


def extract_max_memory(title: str) -> str | None:
    """Maximum supported memory as '<n>GB'."""
    match = _MAX_MEMORY.search(title or "")
    if match:
        return f"{match.group(1)}GB"
    return None


def extract_sockets(title: str) -> list[str] | None:
    """Every socket a title names, in order (coolers list several)."""
    text = title or ""
    found = [(m.start(), f"LGA{m.group(1)}") for m in _SOCKET_LGA.finditer(text)]
    found += [(m.start(), m.group(1).upper()) for m in _SOCKET_AM.finditer(text)]
    sockets = list(dict.fromkeys(socket for _, socket in sorted(found)))
    return sockets or None
