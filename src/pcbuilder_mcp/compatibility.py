"""Rule-based compatibility checks for a build's selected components.

Rules are declarative entries in RULES: the categories a rule needs, its
severity, and a check that returns (message, affected components) or None.
evaluate() runs every rule on every call and never raises; an incompatible
build is a valid result, not a failure.

A rule whose inputs are missing (component not selected, attribute absent or
unparsable) is skipped. Unknown is never incompatible.
"""

import math
from dataclasses import dataclass
from typing import Callable, Mapping

from .config import PSU_SAFETY_MARGIN
from .extract.brands import cpu_vendor
from .extract.values import normalize_form_factor
from .models import REQUIRED_CATEGORIES, CompatibilityIssue, CompatibilityReport, Component, Severity
from .specs import (
    CAPACITY,
    CHIPSET,
    FORM_FACTOR,
    LENGTH,
    MAX_GPU_LENGTH,
    MAX_RAM,
    MEMORY,
    MEMORY_TYPE,
    MOTHERBOARD_SUPPORT,
    RECOMMENDED_PSU,
    SOCKET,
    TDP,
    TDP_RATING,
    WATTAGE,
    parse_memory_gb,
    spec_number,
    spec_text,
    spec_values,
)

# A GPU longer than this share of the case clearance is a tight fit
TIGHT_FIT_RATIO = 0.9

Components = Mapping[str, Component]
CheckResult = tuple[str, list[Component]] | None


@dataclass(frozen=True)
class Rule:
    type: str
    categories: tuple[str, ...]  # All must be selected for the rule to run
    severity: Severity
    check: Callable[[Components], CheckResult]


def _power_draw(component: Component) -> int | None:
    """A component's contribution to the PSU estimate: tdp, else recommendedPSU."""
    draw = spec_number(component.specifications, TDP)
    if draw is None:
        draw = spec_number(component.specifications, RECOMMENDED_PSU)
    return draw


def required_wattage(components: Components) -> int:
    """Recommended PSU wattage: ceil(sum of power draws * safety margin), 0 if nothing draws power."""
    total = 0
    for category, component in components.items():
        if category == "PSU":
            continue
        total += _power_draw(component) or 0
    if total <= 0:
        return 0
    return math.ceil(total * PSU_SAFETY_MARGIN)


def _check_socket(components: Components) -> CheckResult:
    cpu, board = components["CPU"], components["Motherboard"]
    cpu_socket = spec_text(cpu.specifications, SOCKET)
    board_socket = spec_text(board.specifications, SOCKET)
    if cpu_socket is None or board_socket is None:
        return None
    if cpu_socket.casefold() == board_socket.casefold():
        return None
    return (
        f"CPU socket {cpu_socket} does not match motherboard socket {board_socket}",
        [cpu, board],
    )


def _check_memory_type(components: Components) -> CheckResult:
    ram, board = components["RAM"], components["Motherboard"]
    ram_type = spec_text(ram.specifications, MEMORY_TYPE)
    # Boards may list several supported generations: "DDR4/DDR5"
    board_types = spec_values(board.specifications, MEMORY_TYPE)
    if ram_type is None or board_types is None:
        return None
    if ram_type.casefold() in {t.casefold() for t in board_types}:
        return None
    return (
        f"{ram_type} memory is not supported by the motherboard ({'/'.join(board_types)})",
        [ram, board],
    )


def _check_ram_capacity(components: Components) -> CheckResult:
    ram, board = components["RAM"], components["Motherboard"]
    raw = ram.specifications.get(MEMORY) or ram.specifications.get(CAPACITY)
    capacity = parse_memory_gb(raw)
    max_ram = parse_memory_gb(board.specifications.get(MAX_RAM))
    if capacity is None or max_ram is None or capacity <= max_ram:
        return None
    return (
        f"RAM capacity {capacity}GB exceeds the motherboard limit of {max_ram}GB",
        [ram, board],
    )


def _check_form_factor(components: Components) -> CheckResult:
    board, case = components["Motherboard"], components["Case"]
    raw = spec_text(board.specifications, FORM_FACTOR)
    supported = spec_values(case.specifications, MOTHERBOARD_SUPPORT)
    if raw is None or supported is None:
        return None
    form_factor = normalize_form_factor(raw) or raw
    if form_factor.casefold() in {(normalize_form_factor(s) or s).casefold() for s in supported}:
        return None
    return (
        f"Motherboard form factor {form_factor} is not supported by the case ({', '.join(supported)})",
        [board, case],
    )


def _check_cooler_socket(components: Components) -> CheckResult:
    cpu, cooler = components["CPU"], components["Cooling"]
    cpu_socket = spec_text(cpu.specifications, SOCKET)
    # Coolers usually ship mounting kits for several sockets
    cooler_sockets = spec_values(cooler.specifications, SOCKET)
    if cpu_socket is None or cooler_sockets is None:
        return None
    if cpu_socket.casefold() in {s.casefold() for s in cooler_sockets}:
        return None
    return (
        f"CPU cooler supports {'/'.join(cooler_sockets)}, not the CPU socket {cpu_socket}",
        [cpu, cooler],
    )


def _check_psu(components: Components) -> CheckResult:
    psu = components["PSU"]
    wattage = spec_number(psu.specifications, WATTAGE)
    required = required_wattage(components)
    if wattage is None or required == 0:
        return None
    if wattage >= required:
        return None
    drawing = [c for cat, c in components.items() if cat != "PSU" and _power_draw(c)]
    return (
        f"PSU wattage {wattage}W is below the recommended {required}W "
        f"(short by {required - wattage}W)",
        [psu, *drawing],
    )


def _check_psu_missing(components: Components) -> CheckResult:
    if "PSU" in components:
        return None
    required = required_wattage(components)
    if required == 0:
        return None
    drawing = [c for c in components.values() if _power_draw(c)]
    return f"No PSU selected; estimated requirement is {required}W", drawing


def _check_gpu_clearance(components: Components) -> CheckResult:
    gpu, case = components["GPU"], components["Case"]
    length = spec_number(gpu.specifications, LENGTH)
    max_length = spec_number(case.specifications, MAX_GPU_LENGTH)
    if length is None or max_length is None or length <= max_length:
        return None
    return (
        f"GPU length {length}mm exceeds case clearance of {max_length}mm",
        [gpu, case],
    )


def _check_gpu_tight_fit(components: Components) -> CheckResult:
    gpu, case = components["GPU"], components["Case"]
    length = spec_number(gpu.specifications, LENGTH)
    max_length = spec_number(case.specifications, MAX_GPU_LENGTH)
    if length is None or max_length is None or length > max_length:
        return None
    if length <= max_length * TIGHT_FIT_RATIO:
        return None
    return (
        f"GPU will be a tight fit: {length}mm in a case with {max_length}mm of clearance",
        [gpu, case],
    )


def _check_cooling(components: Components) -> CheckResult:
    cpu = components["CPU"]
    tdp = spec_number(cpu.specifications, TDP)
    if tdp is None:
        return None
    cooler = components.get("Cooling")
    if cooler is None:
        return f"No CPU cooler selected for a {tdp}W CPU", [cpu]
    rating = spec_number(cooler.specifications, TDP_RATING)
    if rating is None or rating >= tdp:
        return None
    return (
        f"Cooler is rated for {rating}W but the CPU has a {tdp}W TDP",
        [cpu, cooler],
    )


def _check_chipset_brand(components: Components) -> CheckResult:
    cpu, board = components["CPU"], components["Motherboard"]
    vendor = cpu_vendor(cpu.brand) or cpu_vendor(cpu.name)
    if vendor is None:
        return None
    board_text = " ".join(filter(None, [
        board.name,
        board.model,
        spec_text(board.specifications, CHIPSET),
        spec_text(board.specifications, SOCKET),
    ]))
    if cpu_vendor(board_text) == vendor:
        return None
    return (
        f"Motherboard {board.name or board.model} shows no {vendor} chipset or socket marker; "
        f"verify it supports this {vendor} CPU",
        [cpu, board],
    )


def _check_complete(components: Components) -> CheckResult:
    missing = [c for c in REQUIRED_CATEGORIES if c not in components]
    if not missing:
        return None
    return f"Build is missing required components: {', '.join(missing)}", []


# Errors first: the report lists them in table order
RULES: tuple[Rule, ...] = (
    Rule("socket_mismatch", ("CPU", "Motherboard"), "error", _check_socket),
    Rule("memory_type_mismatch", ("RAM", "Motherboard"), "error", _check_memory_type),
    Rule("ram_capacity_exceeded", ("RAM", "Motherboard"), "error", _check_ram_capacity),
    Rule("form_factor_mismatch", ("Motherboard", "Case"), "error", _check_form_factor),
    Rule("cooler_socket_mismatch", ("CPU", "Cooling"), "error", _check_cooler_socket),
    Rule("psu_insufficient", ("PSU",), "warning", _check_psu),
    Rule("psu_missing", (), "warning", _check_psu_missing),
    Rule("gpu_clearance", ("GPU", "Case"), "warning", _check_gpu_clearance),
    Rule("gpu_tight_fit", ("GPU", "Case"), "warning", _check_gpu_tight_fit),
    Rule("cooling_inadequate", ("CPU",), "warning", _check_cooling),
    Rule("chipset_brand_mismatch", ("CPU", "Motherboard"), "warning", _check_chipset_brand),
    Rule("incomplete_build", (), "warning", _check_complete),
)


def evaluate(components: Components, rules: tuple[Rule, ...] = RULES) -> CompatibilityReport:
    """Evaluate every rule against the selected components (category -> component)."""
    report = CompatibilityReport(estimated_wattage=required_wattage(components))
    for rule in rules:
        if any(cat not in components for cat in rule.categories):
            continue
        result = rule.check(components)
        if result is None:
            continue
        message, affected = result
        issue = CompatibilityIssue(
            type=rule.type,
            severity=rule.severity,
            message=message,
            affected_ids=[c.id for c in affected],
        )
        if rule.severity == "error":
            report.errors.append(issue)
        else:
            report.warnings.append(issue)
    return report
