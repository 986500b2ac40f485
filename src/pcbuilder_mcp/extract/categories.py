"""Category detection and PC-relevancy filtering for marketplace titles."""

import re

# Keywords that mark a listing as something other than a loose PC part
LAPTOP_KEYWORDS = (
    "laptop", "notebook", "ultrabook", "macbook", "thinkpad", "ideapad", "inspiron",
    "pavilion", "vivobook", "zenbook", "chromebook", "2 in 1", "portable computer",
)
SYSTEM_KEYWORDS = (
    "desktop computer", "pc system", "complete pc", "pre built pc", "prebuilt pc", "gaming pc",
    "workstation computer", "all in one pc", "mini pc", "nuc computer", "assembled pc",
    "ready pc", "full system", "desktop system",
)
MOBILE_KEYWORDS = (
    "tablet", "ipad", "mobile phone", "smartphone", "phone case", "mobile accessories",
    "tablet case", "mobile charger",
)
PERIPHERAL_KEYWORDS = (
    "printer", "scanner", "webcam", "headphones", "headset", "speakers", "router", "modem",
    "network switch", "ups battery", "external hdd", "usb hub", "docking station",
    "monitor stand", "laptop bag",
)
EXCLUDED_KEYWORDS = LAPTOP_KEYWORDS + SYSTEM_KEYWORDS + MOBILE_KEYWORDS + PERIPHERAL_KEYWORDS

# Per-category relevancy keywords (used when the caller supplies a category hint)
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "CPU": ("processor", "cpu", "intel", "amd", "ryzen", "core i3", "core i5", "core i7", "core i9", "core ultra"),
    "GPU": ("graphics card", "gpu", "video card", "nvidia", "geforce", "rtx", "gtx", "radeon", "rx", "arc"),
    "RAM": ("ram", "memory", "ddr4", "ddr5", "dimm", "sodimm"),
    "Motherboard": ("motherboard", "mainboard", "mobo", "socket", "chipset", "atx", "micro atx", "mini itx"),
    "Storage": ("ssd", "nvme", "hard drive", "hdd", "m 2", "sata", "storage drive"),
    "PSU": ("power supply", "psu", "smps", "watt", "80 gold", "80 bronze", "modular"),
    "Case": ("pc case", "computer case", "cabinet", "tower", "mid tower", "full tower", "mini itx case"),
    "Cooling": ("cpu cooler", "cooling fan", "liquid cooling", "liquid cooler", "aio", "thermal paste", "heat sink", "heatsink", "cooler"),
}

# General search: any category keyword makes a title relevant
PC_KEYWORDS = tuple(kw for keywords in CATEGORY_KEYWORDS.values() for kw in keywords)

# Detection order matters. Accessories and boards mention the parts they fit
# ("CPU cooler", "motherboard for Ryzen") so they go first. Product nouns
# ("processor", "graphics card") beat product lines, since APU titles read
# "Ryzen 5 5600G with Radeon Graphics" and GPU titles mention GDDR memory.
_DETECTION_ORDER: list[tuple[str, tuple[str, ...]]] = [
    ("Cooling", ("cpu cooler", "liquid cooler", "air cooler", "aio cooler", "aio liquid", "cooling fan",
                 "liquid cooling", "heat sink", "heatsink", "thermal paste")),
    ("Motherboard", ("motherboard", "mainboard", "mobo")),
    ("PSU", ("power supply", "psu", "smps")),
    ("Case", ("cabinet", "pc case", "computer case", "mid tower", "full tower", "case")),
    ("GPU", ("graphics card", "video card", "gpu")),
    ("Storage", ("ssd", "nvme", "hdd", "hard drive", "hard disk")),
    ("CPU", ("processor", "cpu")),
    ("GPU", ("geforce", "radeon", "rtx", "gtx")),
    ("RAM", ("ram", "desktop memory", "memory", "ddr4", "ddr5", "dimm", "sodimm")),
    ("CPU", ("ryzen", "core i3", "core i5", "core i7", "core i9", "core ultra", "intel")),
]

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_title(title: str) -> str:
    """Lowercase, punctuation to spaces, padded with single spaces for keyword lookups."""
    return f" {_NON_ALNUM.sub(' ', title.lower()).strip()} "


def _normalize_keyword(keyword: str) -> str:
    return f" {_NON_ALNUM.sub(' ', keyword.lower()).strip()} "


def _contains_any(normalized: str, keywords: tuple[str, ...]) -> bool:
    return any(_normalize_keyword(kw) in normalized for kw in keywords)


def extract_category(title: str) -> str | None:
    """Detect the component category from a product title, or None if undetectable."""
    if not title:
        return None
    normalized = normalize_title(title)
    for category, keywords in _DETECTION_ORDER:
        if _contains_any(normalized, keywords):
            return category
    return None


def is_excluded(title: str) -> bool:
    """True for laptops, pre-built systems, phones and peripherals."""
    return _contains_any(normalize_title(title), EXCLUDED_KEYWORDS)


def is_relevant(title: str, category: str | None = None) -> bool:
    """Relevancy gate applied to raw marketplace titles before extraction.

    Excluded listings are always dropped. With a category hint the title must
    contain one of that category's keywords; otherwise any PC keyword will do.
    Unknown category hints fall back to the general keyword set.
    """
    if not title or is_excluded(title):
        return False
    normalized = normalize_title(title)
    keywords = CATEGORY_KEYWORDS.get(category, PC_KEYWORDS) if category else PC_KEYWORDS
    return _contains_any(normalized, keywords)
