"""Spec extraction from free-text marketplace titles.

Each extractor is independent and returns a value or None:
- "AMD Ryzen 7 7800X3D 8-Core AM5 Processor" -> CPU, AMD, Ryzen 7 7800X3D, cores=8, socket=AM5
- "Corsair Vengeance 32GB (2x16GB) DDR5 6000MHz" -> RAM, memory=32GB, memoryType=DDR5
- "MSI B650 Gaming Plus WiFi AM5 DDR5 ATX Motherboard" -> socket=AM5, chipset=B650

parse_title composes them; the relevancy helpers decide which titles are PC
parts at all.
"""

from .parser import ExtractedSpec, parse_title
from .categories import (
    CATEGORY_KEYWORDS,
    EXCLUDED_KEYWORDS,
    PC_KEYWORDS,
    extract_category,
    is_excluded,
    is_relevant,
    normalize_title,
)
from .brands import KNOWN_BRANDS, cpu_vendor, extract_brand
from .model_numbers import MODEL_PATTERNS, extract_model
from .values import (
    FORM_FACTORS,
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
    normalize_form_factor,
)

__all__ = [
    # Main API
    "parse_title",
    "ExtractedSpec",
    # Relevancy
    "is_relevant",
    "is_excluded",
    "normalize_title",
    # Pattern constants
    "CATEGORY_KEYWORDS",
    "EXCLUDED_KEYWORDS",
    "PC_KEYWORDS",
    "KNOWN_BRANDS",
    "MODEL_PATTERNS",
    "FORM_FACTORS",
    # Extraction functions
    "extract_category",
    "extract_brand",
    "extract_model",
    "extract_clock_speed",
    "extract_memory",
    "extract_memory_type",
    "extract_cores",
    "extract_socket",
    "extract_chipset",
    "extract_wattage",
    "extract_tdp",
    "extract_length",
    "extract_gpu_clearance",
    "extract_form_factor",
    "extract_supported_form_factors",
    "extract_max_memory",
    "extract_sockets",
    "normalize_form_factor",
    "cpu_vendor",
]
