"""Tests for price parsing, best-offer selection and build totals."""

import pytest

from pcbuilder_mcp.models import Component, Offer
from pcbuilder_mcp.pricing import (
    aggregate_build,
    best_offer,
    compute_discount,
    parse_price,
    price_stats,
    rank_deals,
)


def _offer(offer_id, price, original=0, availability="in_stock", retailer=None):
    return Offer(
        id=offer_id,
        component_id="c1",
        retailer=retailer or offer_id,
        price=price,
        original_price=original,
        availability=availability,
    )


def _component(component_id, *offers, category="CPU"):
    component = Component(id=component_id, name=component_id, category=category)
    for offer in offers:
        component.add_offer(offer)
    return component


class TestParsePrice:
    @pytest.mark.parametrize("text,expected", [
        ("₹1,23,999.00", 12399900),
        ("$499", 49900),
        ("₹ 32,999", 3299900),
        ("1,299.50", 129950),
        (499, 49900),
        (19.99, 1999),
    ])
    def test_parses(self, text, expected):
        assert parse_price(text) == expected

    @pytest.mark.parametrize("text", [None, "", "N/A", "Currently unavailable", "."])
    def test_unparsable_is_zero(self, text):
        assert parse_price(text) == 0

    @pytest.mark.parametrize("value", [{"amount": 100}, ["₹499"], True, float("nan"), float("inf")])
    def test_non_price_values_are_zero(self, value):
        assert parse_price(value) == 0


class TestComputeDiscount:
    def test_discount(self):
        assert compute_discount(10000, 8000) == 20

    def test_rounds(self):
        assert compute_discount(300, 200) == 33

    def test_no_discount_without_markdown(self):
        assert compute_discount(8000, 8000) == 0
        assert compute_discount(0, 0) == 0

    def test_never_negative(self):
        assert compute_discount(8000, 10000) == 0


class TestOfferInvariants:
    def test_original_never_below_price(self):
        offer = _offer("a", 10000, original=5000)
        assert offer.original_price == 10000
        assert offer.discount == 0

    def test_discount_derived(self):
        assert _offer("a", 8000, original=10000).discount == 20

    def test_bad_availability_defaults(self):
        assert _offer("a", 100, availability="preorder").availability == "in_stock"

    def test_negative_prices_clamped(self):
        offer = _offer("a", -500, original=-100)
        assert offer.price == 0
        assert offer.original_price == 0

    def test_negative_price_from_wire(self):
        offer = Offer.from_dict({"id": "a", "retailer": "Amazon", "price": -1999})
        assert offer.price == 0


class TestBestOffer:
    def test_no_offers(self):
        assert best_offer(Component(id="c", name="c", category="CPU")) is None

    def test_cheapest_in_stock(self):
        component = _component("c", _offer("a", 30000), _offer("b", 25000), _offer("d", 27000))
        assert best_offer(component).id == "b"

    def test_prefers_orderable_over_cheaper_out_of_stock(self):
        component = _component(
            "c",
            _offer("a", 20000, availability="out_of_stock"),
            _offer("b", 25000, availability="limited"),
        )
        assert best_offer(component).id == "b"

    def test_falls_back_when_nothing_orderable(self):
        component = _component(
            "c",
            _offer("a", 26000, availability="out_of_stock"),
            _offer("b", 24000, availability="out_of_stock"),
        )
        assert best_offer(component).id == "b"

    def test_unknown_price_ranks_last(self):
        component = _component("c", _offer("a", 0), _offer("b", 99900))
        assert best_offer(component).id == "b"

    def test_ties_keep_first(self):
        component = _component("c", _offer("a", 5000), _offer("b", 5000))
        assert best_offer(component).id == "a"

    def test_result_is_one_of_the_offers(self):
        component = _component("c", _offer("a", 300), _offer("b", 0), _offer("d", 100, availability="out_of_stock"))
        assert best_offer(component) in component.offers


class TestPriceStats:
    def test_ignores_unknown_prices(self):
        average, price_range = price_stats([_offer("a", 100), _offer("b", 300), _offer("c", 0)])
        assert average == 200
        assert price_range == (100, 300)

    def test_empty(self):
        assert price_stats([]) == (None, None)

    def test_component_refreshes_on_add(self):
        component = _component("c", _offer("a", 100))
        component.add_offer(_offer("b", 500))
        assert component.price_range == (100, 500)
        assert component.average_price == 300


class TestAggregateBuild:
    def test_empty_selection_is_all_zero(self):
        totals = aggregate_build({})
        assert totals.total_price == 0
        assert totals.original_total_price == 0
        assert totals.total_discount == 0
        assert totals.total_savings == 0

    def test_sums_best_offers(self):
        cpu = _component("cpu", _offer("a", 30000, original=35000), _offer("b", 32000))
        gpu = _component("gpu", _offer("c", 50000, original=60000), category="GPU")
        totals = aggregate_build({"CPU": cpu, "GPU": gpu})
        assert totals.total_price == 80000
        assert totals.original_total_price == 95000
        assert totals.total_savings == 15000
        assert totals.total_discount == round(15000 / 95000 * 100)

    def test_component_without_offers_contributes_nothing(self):
        cpu = _component("cpu", _offer("a", 30000))
        bare = Component(id="case", name="case", category="Case")
        totals = aggregate_build({"CPU": cpu, "Case": bare})
        assert totals.total_price == 30000
        assert totals.unpriced_ids == ["case"]

    def test_unknown_price_is_not_free(self):
        cpu = _component("cpu", _offer("a", 0))
        gpu = _component("gpu", _offer("b", 5000000), category="GPU")
        totals = aggregate_build({"CPU": cpu, "GPU": gpu})
        assert totals.total_price == 5000000
        assert totals.has_unknown_prices
        assert totals.unpriced_ids == ["cpu"]
        assert totals.to_dict()["unpriced_component_ids"] == ["cpu"]

    def test_fully_priced_build(self):
        totals = aggregate_build({"CPU": _component("cpu", _offer("a", 30000))})
        assert not totals.has_unknown_prices
        assert totals.to_dict()["has_unknown_prices"] is False

    def test_accepts_iterable(self):
        cpu = _component("cpu", _offer("a", 30000))
        assert aggregate_build([cpu]).total_price == 30000

    def test_invariants(self):
        cpu = _component("cpu", _offer("a", 30000, original=31000))
        ram = _component("ram", _offer("b", 9000), category="RAM")
        totals = aggregate_build({"CPU": cpu, "RAM": ram})
        assert totals.original_total_price >= totals.total_price
        assert totals.total_savings == totals.original_total_price - totals.total_price
        assert 0 <= totals.total_discount <= 100


class TestRankDeals:
    def test_biggest_discount_first(self):
        small = _component("small", _offer("a", 9000, original=10000))
        big = _component("big", _offer("b", 6000, original=10000))
        ranked = rank_deals([small, big])
        assert [(c.id, o.discount) for c, o in ranked] == [("big", 40), ("small", 10)]

    def test_skips_unpriced_and_offerless(self):
        unpriced = _component("unpriced", _offer("a", 0))
        bare = Component(id="bare", name="bare", category="CPU")
        assert rank_deals([unpriced, bare]) == []

    def test_equal_discount_prefers_cheaper(self):
        pricey = _component("pricey", _offer("a", 20000, original=40000))
        cheap = _component("cheap", _offer("b", 5000, original=10000))
        assert [c.id for c, _ in rank_deals([pricey, cheap], limit=1)] == ["cheap"]
