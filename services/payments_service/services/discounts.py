"""Discount code rules shared by checkout, the validate/apply endpoints and admin CRUD."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import ensure_utc, utc_now
from services.payments_service.models import DiscountCode, DiscountType
from services.store_service.services.pricing import quantize_money
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


class DiscountError(Exception):
    """A discount code cannot be used; the message is safe to show to the buyer."""


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def check_discount_usable(
    discount: Optional[DiscountCode],
    subtotal: Decimal,
    now: Optional[datetime] = None,
) -> None:
    """Raise DiscountError unless the code can be applied to ``subtotal`` right now."""
    if discount is None:
        raise DiscountError("Invalid discount code")
    if not discount.is_active:
        raise DiscountError("This discount code is no longer active")

    now = now or utc_now()
    starts_at = ensure_utc(discount.starts_at)
    ends_at = ensure_utc(discount.ends_at)
    if starts_at and now < starts_at:
        raise DiscountError("This discount code is not yet valid")
    if ends_at and now > ends_at:
        raise DiscountError("This discount code has expired")

    if discount.usage_limit is not None and discount.times_used >= discount.usage_limit:
        raise DiscountError("This discount code has reached its usage limit")

    if discount.min_order_amount is not None and subtotal < discount.min_order_amount:
        raise DiscountError(
            f"Minimum order amount of ${quantize_money(discount.min_order_amount)} "
            "required for this discount"
        )


def compute_discount_amount(discount: DiscountCode, subtotal: Decimal) -> Decimal:
    """
    Amount taken off ``subtotal``.

    Percentage discounts are capped by ``max_discount_amount``; every discount
    is capped at the subtotal.
    """
    subtotal = quantize_money(subtotal)
    if discount.discount_type == DiscountType.PERCENTAGE:
        amount = quantize_money(subtotal * Decimal(discount.discount_value) / 100)
        if discount.max_discount_amount is not None:
            amount = min(amount, quantize_money(discount.max_discount_amount))
    else:
        amount = quantize_money(discount.discount_value)
    return min(amount, subtotal)


async def get_discount_by_code(
    db: AsyncSession, code: str, for_update: bool = False
) -> Optional[DiscountCode]:
    query = select(DiscountCode).where(DiscountCode.code == normalize_code(code))
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def resolve_discount(
    db: AsyncSession,
    code: str,
    subtotal: Decimal,
    for_update: bool = False,
) -> tuple[DiscountCode, Decimal]:
    """Look up and check a code. Returns ``(discount, amount)``; raises DiscountError."""
    discount = await get_discount_by_code(db, code, for_update=for_update)
    check_discount_usable(discount, subtotal)
    return discount, compute_discount_amount(discount, subtotal)


def redeem_discount(discount: DiscountCode) -> None:
    discount.times_used = (discount.times_used or 0) + 1
