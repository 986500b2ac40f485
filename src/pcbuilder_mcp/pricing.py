"""Price aggregation: best offer per component, totals per build.

Prices are integers in the smallest currency unit. A price of 0 means the
source price was unparsable; it is never treated as free.
"""

import math
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Mapping

if TYPE_CHECKING:
    from .models import Component, Offer

_PRICE_RE = re.compile(r"[^\d.]")

# Availability states that can actually be ordered
ORDERABLE = ("in_stock", "limited")


@dataclass
class BuildTotals:
    """Sums over the components whose best offer has a known price.

    Components without a priced offer are listed in unpriced_ids instead, so a
    total that leaves them out is visibly partial.
    """
    total_price: int = 0
    original_total_price: int = 0
    total_discount: int = 0
    total_savings: int = 0
    unpriced_ids: list[str] = field(default_factory=list)

    @property
    def has_unknown_prices(self) -> bool:
        return bool(self.unpriced_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_price": self.total_price,
            "original_total_price": self.original_total_price,
            "total_discount": self.total_discount,
            "total_savings": self.total_savings,
            "has_unknown_prices": self.has_unknown_prices,
            "unpriced_component_ids": list(self.unpriced_ids),
        }


def compute_discount(original_price: int, price: int) -> int:
    """Discount percent, always derived from prices: 0 unless original > price."""
    if original_price > price and original_price > 0:
        return round((original_price - price) / original_price * 100)
    return 0


def parse_price(price_str: str | int | float | None) -> int:
    """Parse a marketplace price like '₹1,23,999.00' or '$499' into smallest units.

    Currency symbols and thousands separators are stripped. Anything
    unparsable yields 0.
    """
    if isinstance(price_str, bool):
        return 0
    if isinstance(price_str, (int, float)):
        value = float(price_str)
    elif isinstance(price_str, str):
        try:
            value = float(_PRICE_RE.sub("", price_str))
        except ValueError:
            return 0
    else:
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, round(value * 100))


def _rank(offer: "Offer") -> tuple[bool, int]:
    # Unknown prices (0) sort after every known price
    return (offer.price <= 0, offer.price)


def best_offer(component: "Component") -> "Offer | None":
    """Cheapest orderable offer, else the cheapest offer regardless of availability.

    Ties keep list order. Returns None only when the component has no offers.
    """
    if not component.offers:
        return None
    orderable = [o for o in component.offers if o.availability in ORDERABLE]
    return min(orderable or component.offers, key=_rank)


def price_stats(offers: Iterable["Offer"]) -> tuple[float | None, tuple[int, int] | None]:
    """Average price and (min, max) range over offers with a known price."""
    prices = [o.price for o in offers if o.price > 0]
    if not prices:
        return None, None
    return sum(prices) / len(prices), (min(prices), max(prices))


def aggregate_build(components: "Mapping[str, Component] | Iterable[Component]") -> BuildTotals:
    """Sum each selected component's best offer into build totals.

    An empty selection yields all-zero totals. A component with no offer, or
    whose best offer has an unknown price, is left out of the sums and
    recorded in unpriced_ids.
    """
    selected = components.values() if isinstance(components, Mapping) else components
    total_price = 0
    original_total = 0
    unpriced: list[str] = []
    for component in selected:
        offer = best_offer(component)
        if offer is None or offer.price <= 0:
            unpriced.append(component.id)
            continue
        total_price += offer.price
        original_total += max(offer.original_price, offer.price)

    return BuildTotals(
        total_price=total_price,
        original_total_price=original_total,
        total_discount=compute_discount(original_total, total_price),
        total_savings=original_total - total_price,
        unpriced_ids=unpriced,
    )


def rank_deals(components: Iterable["Component"], limit: int = 20) -> list[tuple["Component", "Offer"]]:
    """Components paired with their best offer, biggest discount first.

    Discounts are recomputed from the offer prices. Components without a
    priced offer are skipped. Ties go to the more reviewed component, then
    the lower price.
    """
    deals: list[tuple["Component", "Offer"]] = []
    for component in components:
        offer = best_offer(component)
        if offer is None or offer.price <= 0:
            continue
        deals.append((component, offer))
    deals.sort(key=lambda deal: (-deal[1].discount, -deal[0].review_count, deal[1].price))
    return deals[:max(0, limit)]
