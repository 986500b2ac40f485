"""Brand detection for PC part titles."""

import re

# Board partners and part makers are checked before chip vendors so that
# "Sapphire Pulse AMD Radeon RX 7800 XT" resolves to Sapphire, not AMD.
KNOWN_BRANDS = (
    "ASUS", "MSI", "Gigabyte", "ASRock", "Zotac", "Sapphire", "PowerColor", "XFX", "EVGA",
    "Galax", "Inno3D", "PNY", "Palit", "Corsair", "G.Skill", "Kingston", "Crucial", "TeamGroup",
    "ADATA", "XPG", "Samsung", "Western Digital", "Seagate", "Cooler Master", "Thermaltake",
    "NZXT", "Fractal Design", "Lian Li", "DeepCool", "Noctua", "Arctic", "be quiet!", "Antec",
    "Ant Esports", "Seasonic", "Phanteks", "Montech",
    "AMD", "Intel", "NVIDIA",
)

# Alternate spellings seen in titles -> canonical brand
BRAND_ALIASES: dict[str, str] = {
    "gskill": "G.Skill",
    "wd": "Western Digital",
    "team group": "TeamGroup",
    "coolermaster": "Cooler Master",
    "lianli": "Lian Li",
    "bequiet": "be quiet!",
    "asus rog": "ASUS",
    "rog": "ASUS",
    "aorus": "Gigabyte",
}

# Chipset tokens used by the vendor heuristic
INTEL_CHIPSETS = frozenset({
    "H510", "B560", "H570", "Z590", "H610", "B660", "H670", "Z690", "W680",
    "B760", "H770", "Z790", "W790", "H810", "B860", "Z890",
})
AMD_CHIPSETS = frozenset({
    "A520", "B550", "X570", "A620", "B650", "B650E", "X670", "X670E",
    "B840", "B850", "X870", "X870E",
})

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def _normalize(text: str) -> str:
    return f" {_NON_ALNUM.sub(' ', text.lower()).strip()} "


_BRAND_LOOKUP = [(_normalize(b), b) for b in KNOWN_BRANDS]
_ALIAS_LOOKUP = [(_normalize(alias), brand) for alias, brand in BRAND_ALIASES.items()]


def extract_brand(title: str) -> str | None:
    """Return the canonical brand named in a title, or None."""
    if not title:
        return None
    normalized = _normalize(title)
    for needle, brand in _BRAND_LOOKUP:
        if needle in normalized:
            return brand
    for needle, brand in _ALIAS_LOOKUP:
        if needle in normalized:
            return brand
    return None


def cpu_vendor(text: str | None) -> str | None:
    """Intel or AMD if the text carries a recognizable vendor token.

    Socket, chipset and product-line tokens count as vendor markers: LGA
    sockets, Intel chipsets and Core branding imply Intel; AM sockets, AMD
    chipsets and Ryzen imply AMD.
    """
    if not text:
        return None
    normalized = _normalize(text)
    tokens = {t.upper() for t in normalized.split()}
    if tokens & INTEL_CHIPSETS:
        return "Intel"
    if tokens & AMD_CHIPSETS:
        return "AMD"
    if " intel " in normalized or re.search(r" lga ?\d", normalized) or " core i" in normalized:
        return "Intel"
    if " amd " in normalized or " ryzen " in normalized or re.search(r" am[2-5] ", normalized):
        return "AMD"
    return None
