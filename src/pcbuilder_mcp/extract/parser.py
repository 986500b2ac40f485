"""Compose the individual extractors into a structured spec for one title."""

from dataclasses import dataclass, field
from typing import Any

from .brands import extract_brand
from .categories import extract_category
from .model_numbers import extract_model
from .values import (
    extract_chipset,
    extract_clock_speed,
    extract_cores,
    extract_form_factor,
    extract_gpu_clearance,
    extract_length,
    extract_max_memory,
    extract_memory,
    extract_memory_type,
    extract_socket,
    extract_sockets,
    extract_supported_form_factors,
    extract_tdp,
    extract_wattage,
)


@dataclass
class ExtractedSpec:
    """Result of parsing a marketplace product title."""
    category: str
    brand: str
    model: str
    specifications: dict[str, Any] = field(default_factory=dict)


def _put(specs: dict[str, Any], key: str, value: Any) -> None:
    # Unknown values stay out of the bag entirely
    if value is not None:
        specs[key] = value


def parse_title(title: str, category_hint: str | None = None) -> ExtractedSpec:
    """Parse a product title into category, brand, model and spec bag.

    Examples:
        "Intel Core i7-13700K Desktop Processor 16 cores up to 5.4 GHz LGA1700"
            -> CPU, Intel, i7-13700K, {clockSpeed, cores, socket}
        "Corsair RM850x 850 Watt 80+ Gold Fully Modular Power Supply"
            -> PSU, Corsair, RM850x, {wattage: 850}

    A detected category wins over the hint; the hint only applies when the
    title alone is inconclusive. Brand falls back to the first word and model
    to the first three words, the way marketplace titles usually start.
    """
    title = (title or "").strip()
    words = title.split()
    category = extract_category(title) or category_hint or "Other"
    brand = extract_brand(title) or (words[0] if words else "")
    model = extract_model(title) or " ".join(words[:3])

    specs: dict[str, Any] = {}
    _put(specs, "clockSpeed", extract_clock_speed(title))
    _put(specs, "cores", extract_cores(title))

    memory = extract_memory(title)
    if memory and category in ("RAM", "GPU"):
        _put(specs, "memory", memory[0])
    if category in ("RAM", "Motherboard"):
        _put(specs, "memoryType", extract_memory_type(title))

    if category in ("CPU", "Motherboard"):
        _put(specs, "socket", extract_socket(title))
    if category == "Motherboard":
        _put(specs, "chipset", extract_chipset(title))
        _put(specs, "formFactor", extract_form_factor(title))
        _put(specs, "maxRam", extract_max_memory(title))
    if category == "CPU":
        _put(specs, "tdp", extract_tdp(title))
    if category == "Cooling":
        _put(specs, "tdpRating", extract_tdp(title))
        sockets = extract_sockets(title)
        _put(specs, "socket", "/".join(sockets) if sockets else None)
    if category == "PSU":
        _put(specs, "wattage", extract_wattage(title))
    if category == "GPU":
        _put(specs, "recommendedPSU", extract_wattage(title))
        _put(specs, "length", extract_length(title))
    if category == "Case":
        _put(specs, "maxGpuLength", extract_gpu_clearance(title))
        _put(specs, "motherboardSupport", extract_supported_form_factors(title))

    return ExtractedSpec(category=category, brand=brand, model=model, specifications=specs)
