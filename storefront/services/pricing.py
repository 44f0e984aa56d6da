# storefront/services/pricing.py
"""
Pricing kernel. Pure and deterministic: the same line items always give the
same totals. Prices arrive as two-decimal strings (or Decimals) and leave as
two-decimal strings; every component is rounded, not only the grand total.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from storefront.utils.formatting import format_money, round_two
from storefront.utils.settings import FREE_SHIPPING_THRESHOLD, SHIPPING_PRICE, TAX_RATE


@dataclass(frozen=True)
class Totals:
    items_price: str
    shipping_price: str
    tax_price: str
    total_price: str

    def as_dict(self) -> dict[str, str]:
        return {
            "items_price": self.items_price,
            "shipping_price": self.shipping_price,
            "tax_price": self.tax_price,
            "total_price": self.total_price,
        }


def _price_and_qty(line) -> tuple[Decimal, int]:
    if isinstance(line, dict):
        return Decimal(str(line["price"])), int(line["quantity"])
    return Decimal(str(line.price)), int(line.quantity)


def calc_totals(
    lines: Iterable,
    free_shipping_threshold: Decimal = FREE_SHIPPING_THRESHOLD,
    shipping_fee: Decimal = SHIPPING_PRICE,
    tax_rate: Decimal = TAX_RATE,
) -> Totals:
    """Lines are anything exposing price and quantity (models, schemas or dicts)."""
    items = round_two(sum((price * qty for price, qty in map(_price_and_qty, lines)), Decimal("0")))
    shipping = round_two(Decimal("0") if items >= free_shipping_threshold else shipping_fee)
    tax = round_two(items * tax_rate)
    total = round_two(items + shipping + tax)

    return Totals(
        items_price=format_money(items),
        shipping_price=format_money(shipping),
        tax_price=format_money(tax),
        total_price=format_money(total),
    )
