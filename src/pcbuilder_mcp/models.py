"""Catalog and build records shared by the engines, the store and the server."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from .pricing import BuildTotals, compute_discount, price_stats

# Canonical categories, in display order
CATEGORIES = ("CPU", "GPU", "RAM", "Motherboard", "Storage", "PSU", "Case", "Cooling", "Other")

# Categories a build needs before it is considered complete
REQUIRED_CATEGORIES = ("CPU", "Motherboard", "RAM", "Storage")

# Categories that count towards completion percentage
BUILD_SLOTS = ("CPU", "GPU", "RAM", "Motherboard", "Storage", "PSU", "Case", "Cooling")

Availability = Literal["in_stock", "out_of_stock", "limited"]
AVAILABILITY_STATES = ("in_stock", "out_of_stock", "limited")

Severity = Literal["error", "warning"]

# Lowercase names and aliases -> canonical category
_CATEGORY_ALIASES: dict[str, str] = {
    "cpu": "CPU",
    "processor": "CPU",
    "gpu": "GPU",
    "graphics card": "GPU",
    "video card": "GPU",
    "ram": "RAM",
    "memory": "RAM",
    "motherboard": "Motherboard",
    "mobo": "Motherboard",
    "mainboard": "Motherboard",
    "storage": "Storage",
    "ssd": "Storage",
    "hdd": "Storage",
    "psu": "PSU",
    "power supply": "PSU",
    "smps": "PSU",
    "case": "Case",
    "cabinet": "Case",
    "cooling": "Cooling",
    "cooler": "Cooling",
    "other": "Other",
}


def normalize_category(value: str | None) -> str | None:
    """Resolve a category name or alias (case-insensitive) to its canonical form.

    Returns None for anything outside the fixed category set.
    """
    if not value or not isinstance(value, str):
        return None
    return _CATEGORY_ALIASES.get(value.strip().lower())


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Shipping:
    cost: int = 0
    estimated_days: int = 3
    free: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"cost": self.cost, "estimated_days": self.estimated_days, "free": self.free}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Shipping":
        data = data or {}
        return cls(
            cost=int(data.get("cost", 0) or 0),
            estimated_days=int(data.get("estimated_days", 3) or 3),
            free=bool(data.get("free", False)),
        )


@dataclass
class Offer:
    """One retailer's listing for a component.

    Prices are integers in the smallest currency unit; 0 means the price is
    unknown (unparsable at the source), not free.
    """

    id: str
    component_id: str
    retailer: str
    price: int
    original_price: int = 0
    availability: Availability = "in_stock"
    url: str = ""
    shipping: Shipping = field(default_factory=Shipping)
    badges: list[str] = field(default_factory=list)
    last_updated: str = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        self.price = max(0, self.price)
        # Original price never sits below the selling price
        if self.original_price < self.price:
            self.original_price = self.price
        if self.availability not in AVAILABILITY_STATES:
            self.availability = "in_stock"

    @property
    def discount(self) -> int:
        return compute_discount(self.original_price, self.price)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "component_id": self.component_id,
            "retailer": self.retailer,
            "price": self.price,
            "original_price": self.original_price,
            "discount": self.discount,
            "availability": self.availability,
            "url": self.url,
            "shipping": self.shipping.to_dict(),
            "badges": list(self.badges),
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], component_id: str | None = None) -> "Offer":
        # "discount" is derived from prices, never read
        price = int(data.get("price", 0) or 0)
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            component_id=str(component_id or data.get("component_id") or ""),
            retailer=str(data.get("retailer") or "Other"),
            price=price,
            original_price=int(data.get("original_price", 0) or 0),
            availability=data.get("availability", "in_stock"),
            url=str(data.get("url") or ""),
            shipping=Shipping.from_dict(data.get("shipping")),
            badges=list(data.get("badges") or []),
            last_updated=str(data.get("last_updated") or utc_now()),
        )


@dataclass
class Component:
    """Canonical catalog entry for one physical part."""

    id: str
    name: str
    category: str
    brand: str = ""
    model: str = ""
    specifications: dict[str, Any] = field(default_factory=dict)
    offers: list[Offer] = field(default_factory=list)
    rating: float | None = None
    review_count: int = 0
    image_url: str | None = None
    source: str = "manual"
    source_id: str | None = None
    average_price: float | None = None
    price_range: tuple[int, int] | None = None
    last_updated: str = field(default_factory=utc_now)

    @staticmethod
    def make_id(source: str | None, source_id: str | None) -> str:
        """Stable id from source + external id, generated when either is missing."""
        if source and source_id:
            return f"{source}-{source_id}"
        return uuid.uuid4().hex

    def refresh_price_stats(self) -> None:
        """Recompute average price and price range over offers with a known price."""
        self.average_price, self.price_range = price_stats(self.offers)

    def add_offer(self, offer: Offer) -> None:
        """Attach an offer, replacing any earlier offer from the same retailer."""
        offer.component_id = self.id
        self.offers = [o for o in self.offers if o.retailer != offer.retailer]
        self.offers.append(offer)
        self.refresh_price_stats()
        self.last_updated = utc_now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "model": self.model,
            "specifications": dict(self.specifications),
            "offers": [o.to_dict() for o in self.offers],
            "rating": self.rating,
            "review_count": self.review_count,
            "image_url": self.image_url,
            "source": self.source,
            "source_id": self.source_id,
            "average_price": self.average_price,
            "price_range": {"min": self.price_range[0], "max": self.price_range[1]} if self.price_range else None,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Component":
        """Build a component from a wire/storage dict. Category must already be canonical."""
        source = data.get("source") or "manual"
        source_id = data.get("source_id")
        component_id = str(data.get("id") or cls.make_id(source, source_id))
        rating = data.get("rating")
        component = cls(
            id=component_id,
            name=str(data.get("name") or ""),
            category=str(data.get("category") or "Other"),
            brand=str(data.get("brand") or ""),
            model=str(data.get("model") or ""),
            specifications=dict(data.get("specifications") or {}),
            offers=[Offer.from_dict(o, component_id) for o in data.get("offers") or []],
            rating=float(rating) if rating is not None else None,
            review_count=int(data.get("review_count", 0) or 0),
            image_url=data.get("image_url"),
            source=source,
            source_id=source_id,
            last_updated=str(data.get("last_updated") or utc_now()),
        )
        component.refresh_price_stats()
        return component


@dataclass
class CompatibilityIssue:
    """A single rule outcome. Errors block the build; warnings do not."""

    type: str
    severity: Severity
    message: str
    affected_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message, "affected_ids": list(self.affected_ids)}


@dataclass
class CompatibilityReport:
    warnings: list[CompatibilityIssue] = field(default_factory=list)
    errors: list[CompatibilityIssue] = field(default_factory=list)
    estimated_wattage: int = 0
    checked_at: str = field(default_factory=utc_now)

    @property
    def is_compatible(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_compatible": self.is_compatible,
            "warnings": [w.to_dict() for w in self.warnings],
            "errors": [e.to_dict() for e in self.errors],
            "estimated_wattage": self.estimated_wattage,
            "checked_at": self.checked_at,
        }


@dataclass
class Build:
    """A user's parts list: at most one component per category.

    Derived fields (totals, compatibility) are only ever set by
    builds.recompute() and are rebuilt in full on every mutation.
    """

    id: str
    name: str
    description: str = ""
    components: dict[str, Component] = field(default_factory=dict)
    totals: BuildTotals = field(default_factory=BuildTotals)
    compatibility: CompatibilityReport = field(default_factory=CompatibilityReport)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    @property
    def is_complete(self) -> bool:
        return all(c in self.components for c in REQUIRED_CATEGORIES)

    @property
    def completion_percentage(self) -> int:
        selected = sum(1 for c in BUILD_SLOTS if c in self.components)
        return round(selected / len(BUILD_SLOTS) * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "components": {cat: comp.to_dict() for cat, comp in self.components.items()},
            **self.totals.to_dict(),
            "compatibility": self.compatibility.to_dict(),
            "is_complete": self.is_complete,
            "completion_percentage": self.completion_percentage,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_record(self) -> dict[str, Any]:
        """Persisted form: selections and metadata only, never derived fields."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "components": {cat: comp.to_dict() for cat, comp in self.components.items()},
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Build":
        """Rebuild from to_record() output. Derived fields start empty until recomputed."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            components={
                cat: Component.from_dict(comp)
                for cat, comp in (data.get("components") or {}).items()
            },
            created_at=str(data.get("created_at") or utc_now()),
            updated_at=str(data.get("updated_at") or utc_now()),
        )
