# storefront/utils/formatting.py
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def round_two(value) -> Decimal:
    """Round half away from zero to two decimals. Accepts str, int, float or Decimal."""
    if isinstance(value, bool) or value is None:
        raise TypeError("Value must be a number or string")
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    """Fixed two-decimal string, e.g. 5 -> '5.00', '12.5' -> '12.50'."""
    return f"{round_two(value):.2f}"


def to_minor_units(value) -> int:
    return int((round_two(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def format_id(value: str) -> str:
    """Short display id: last 6 characters, e.g. '..93ABC0'."""
    return f"..{value[-6:].upper()}"


def order_number(order_id: str) -> str:
    return order_id[:8].upper()


def format_date_time(value: datetime) -> str:
    # Oct 19, 2026, 3:04 PM
    hour = value.strftime("%I").lstrip("0") or "12"
    return f"{value.strftime('%b')} {value.day}, {value.year}, {hour}:{value.strftime('%M %p')}"
