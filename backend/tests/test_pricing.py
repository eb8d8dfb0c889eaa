from collections import namedtuple

import pytest

from services import pricing

Line = namedtuple("Line", "price quantity")


@pytest.mark.parametrize("subtotal, charge", [
    (0, 150),
    (999.99, 150),
    (1000, 150),
    (1000.01, 200),
    (5000, 200),
    (5000.01, 300),
    (120000, 300),
])
def test_delivery_charge_tiers(subtotal, charge):
    assert pricing.delivery_charge(subtotal) == charge


def test_discounted_price_rounds_to_cents():
    assert pricing.discounted_price(1000, 10) == 900
    assert pricing.discounted_price(100, 10) == 90
    assert pricing.discounted_price(999, 15) == 849.15
    assert pricing.discounted_price(19.99, 33) == 13.39


def test_discounted_price_without_offer_is_list_price():
    assert pricing.discounted_price(450.0, None) == 450.0
    assert pricing.discounted_price(1000, 0) == 1000
    assert pricing.discounted_price(450.0, 100) == 0


@pytest.mark.parametrize("pct", [-1, 100.5])
def test_discount_outside_range_is_rejected(pct):
    with pytest.raises(ValueError):
        pricing.discounted_price(100, pct)


def test_empty_cart_still_pays_lowest_tier():
    assert pricing.cart_summary([]) == {"subtotal": 0, "delivery_charge": 150, "total": 150}


def test_cart_summary_uses_live_price_times_quantity():
    summary = pricing.cart_summary([Line(400, 2), Line(200, 2)])
    assert summary == {"subtotal": 1200, "delivery_charge": 200, "total": 1400}


def test_total_is_subtotal_plus_delivery():
    assert pricing.total(5000) == 5200
    assert pricing.total(5001) == 5301


def test_subtotal_is_the_sum_of_rounded_lines():
    lines = [Line(0.125, 1), Line(0.125, 1)]
    assert [pricing.line_total(line.price, line.quantity) for line in lines] == [0.12, 0.12]
    assert pricing.subtotal(lines) == 0.24

    summary = pricing.cart_summary(lines)
    assert summary["total"] == round(0.24 + summary["delivery_charge"], 2)
