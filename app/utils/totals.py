"""
Invoice and estimate total calculation.

The order is fixed: subtotal, then discount, then tax on the discounted
amount.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, Protocol, Union


CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


class DiscountType(str, Enum):
    """How ``discount_value`` is interpreted."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class LineLike(Protocol):
    quantity: Decimal
    rate: Decimal


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total: Decimal


def to_decimal(value: Number | None) -> Decimal:
    """Coerce user input to Decimal; blanks and None become zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str) and not value.strip():
        return ZERO
    # str() avoids binary float artefacts such as 0.1 -> 0.1000000000000000055
    return Decimal(str(value))


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def line_amount(quantity: Number, rate: Number) -> Decimal:
    """Amount of one line item, rounded to cents."""
    return quantize(to_decimal(quantity) * to_decimal(rate))


def calculate_discount(
    subtotal: Decimal,
    discount_type: DiscountType | str | None,
    discount_value: Number | None,
) -> Decimal:
    value = to_decimal(discount_value)
    if value <= 0:
        return ZERO

    if discount_type == DiscountType.FIXED:
        amount = value
    else:
        amount = subtotal * value / HUNDRED

    # A discount can never push the invoice below zero
    return min(amount, subtotal) if subtotal > 0 else ZERO


def calculate_totals(
    line_items: Iterable[LineLike | dict],
    tax_rate: Number | None = 0,
    discount_type: DiscountType | str | None = DiscountType.PERCENTAGE,
    discount_value: Number | None = 0,
) -> Totals:
    """
    Compute subtotal, discount, tax and total.

    Args:
        line_items: Objects or dicts carrying ``quantity`` and ``rate``
        tax_rate: Tax percentage applied after the discount
        discount_type: ``percentage`` or ``fixed``
        discount_value: Percentage points or a fixed amount

    Returns:
        Totals rounded to cents
    """
    subtotal = ZERO
    for item in line_items:
        if isinstance(item, dict):
            quantity, rate = item.get("quantity"), item.get("rate")
        else:
            quantity, rate = item.quantity, item.rate
        subtotal += to_decimal(quantity) * to_decimal(rate)

    subtotal = quantize(subtotal)
    discount_amount = quantize(calculate_discount(subtotal, discount_type, discount_value))
    after_discount = subtotal - discount_amount
    tax_amount = quantize(after_discount * to_decimal(tax_rate) / HUNDRED)

    # Rounded parts are summed so the stored columns always add up
    return Totals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        total=after_discount + tax_amount,
    )
