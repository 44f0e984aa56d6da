from decimal import Decimal

import pytest

from storefront.services.pricing import calc_totals
from storefront.utils.formatting import format_id, format_money, order_number, round_two, to_minor_units


def test_below_free_shipping_threshold():
    totals = calc_totals([{"price": "99.99", "quantity": 1}])

    assert totals.items_price == "99.99"
    assert totals.shipping_price == "10.00"
    assert totals.tax_price == "15.00"
    assert totals.total_price == "124.99"


def test_free_shipping_from_threshold():
    totals = calc_totals([{"price": "50.00", "quantity": 2}])

    assert totals.items_price == "100.00"
    assert totals.shipping_price == "0.00"
    assert totals.tax_price == "15.00"
    assert totals.total_price == "115.00"


def test_empty_cart_still_charges_shipping():
    totals = calc_totals([])

    assert totals.as_dict() == {
        "items_price": "0.00",
        "shipping_price": "10.00",
        "tax_price": "0.00",
        "total_price": "10.00",
    }


def test_each_component_is_rounded():
    # 3 x 12.99 = 38.97, tax 5.8455 -> 5.85
    totals = calc_totals([{"price": "12.99", "quantity": 3}])

    assert totals.tax_price == "5.85"
    assert totals.total_price == "54.82"


def test_accepts_objects_with_price_and_quantity():
    class Line:
        def __init__(self, price, quantity):
            self.price = price
            self.quantity = quantity

    totals = calc_totals([Line(Decimal("29.99"), 2), Line("8.99", 1)])

    assert totals.items_price == "68.97"


def test_is_deterministic():
    lines = [{"price": "15.99", "quantity": 4}, {"price": "49.99", "quantity": 1}]
    assert calc_totals(lines) == calc_totals(list(lines))


def test_custom_rates():
    totals = calc_totals(
        [{"price": "20.00", "quantity": 1}],
        free_shipping_threshold=Decimal("10.00"),
        shipping_fee=Decimal("5.00"),
        tax_rate=Decimal("0.10"),
    )
    assert (totals.shipping_price, totals.tax_price, totals.total_price) == ("0.00", "2.00", "22.00")


@pytest.mark.parametrize(
    "value, expected",
    [("1.005", "1.01"), ("2.675", "2.68"), (1.005, "1.01"), ("10", "10.00"), (Decimal("-1.005"), "-1.01")],
)
def test_round_two_is_half_away_from_zero(value, expected):
    assert round_two(value) == Decimal(expected)


def test_round_two_rejects_other_types():
    with pytest.raises(TypeError):
        round_two(None)


def test_money_helpers():
    assert format_money("5") == "5.00"
    assert format_money(Decimal("12.5")) == "12.50"
    assert to_minor_units("124.99") == 12499
    assert to_minor_units(Decimal("0.10")) == 10


def test_short_ids():
    order_id = "3f2a9c1e-7b4d-4e8a-9f10-5c6d7e93abc0"

    assert format_id(order_id) == "..93ABC0"
    assert order_number(order_id) == "3F2A9C1E"
