"""Order totals: flat shipping, tax on the subtotal, discount off the top."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from libs.common.config import get_settings

TWO_PLACES = Decimal("0.01")


def quantize_money(value) -> Decimal:
    """Round a money value to cents, half up."""
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


def calculate_order_totals(
    subtotal: Decimal,
    discount: Decimal = Decimal("0"),
    shipping: Optional[Decimal] = None,
    tax_rate: Optional[Decimal] = None,
) -> OrderTotals:
    """
    Compute order totals.

    ``total = subtotal + shipping + tax - discount`` where tax is charged on the
    pre-discount subtotal. The discount never exceeds the subtotal.
    """
    settings = get_settings()
    subtotal = quantize_money(subtotal)
    shipping = quantize_money(
        settings.SHIPPING_FLAT_RATE if shipping is None else shipping
    )
    rate = settings.TAX_RATE if tax_rate is None else tax_rate
    tax = quantize_money(subtotal * Decimal(str(rate)))
    discount = min(quantize_money(discount), subtotal)

    return OrderTotals(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        discount=discount,
        total=subtotal + shipping + tax - discount,
    )


def to_minor_units(amount: Decimal) -> int:
    """Dollars to cents for the payment provider."""
    return int((quantize_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))
