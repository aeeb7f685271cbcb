"""Checkout: turn the caller's cart into an order awaiting approval."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser, Role
from libs.common.config import get_settings
from libs.common.emails.store import send_order_confirmation_email
from libs.common.logging import get_logger
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.members_service.models import User
from services.payments_service.services.discounts import (
    DiscountError,
    redeem_discount,
    resolve_discount,
)
from services.store_service.models import (
    CartStatus,
    Order,
    OrderItem,
    OrderPaymentStatus,
    OrderStatus,
    OrderType,
    PaymentMethod,
    TaskCategory,
    TaskPriority,
    TaskRelatedEntity,
)
from services.store_service.routers.cart import (
    collect_cart_problems,
    get_active_cart,
)
from services.store_service.schemas import CheckoutRequest, CheckoutResponse
from services.store_service.services import tasks as task_service
from services.store_service.services.inventory import (
    InsufficientStockError,
    reserve_order_item,
)
from services.store_service.services.order_workflow import record_history
from services.store_service.services.pricing import (
    calculate_order_totals,
    quantize_money,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["checkout"])
logger = get_logger(__name__)
settings = get_settings()

PAYMENT_METHODS = {
    "credit_card": PaymentMethod.CREDIT_CARD,
    "e_transfer": PaymentMethod.E_TRANSFER,
    "bitcoin": PaymentMethod.BITCOIN,
}


def parse_payment_method(value: str) -> PaymentMethod:
    key = value.strip().lower().replace("-", "_")
    if key in PAYMENT_METHODS:
        return PAYMENT_METHODS[key]
    for method in PaymentMethod:
        if method.value.lower() == key:
            return method
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Unsupported payment method. Use credit_card, e_transfer or bitcoin",
    )


def build_payment_instructions(
    method: PaymentMethod, order_number: str, total: Decimal
) -> Optional[dict]:
    if method == PaymentMethod.E_TRANSFER:
        return {
            "method": "e_transfer",
            "email": settings.ETRANSFER_EMAIL,
            "amount": str(total),
            "reference": order_number,
            "message": (
                f"Send an Interac e-Transfer of ${total} to {settings.ETRANSFER_EMAIL} "
                f"with {order_number} in the message."
            ),
        }
    if method == PaymentMethod.BITCOIN:
        return {
            "method": "bitcoin",
            "wallet_address": settings.BITCOIN_WALLET_ADDRESS,
            "amount": str(total),
            "currency": settings.CURRENCY.upper(),
            "reference": order_number,
            "message": (
                f"Send the Bitcoin equivalent of ${total} to "
                f"{settings.BITCOIN_WALLET_ADDRESS} and keep your transaction id."
            ),
        }
    return None


async def resolve_checkout_referral_code(
    db: AsyncSession, buyer: User, referral_code: Optional[str]
) -> Optional[str]:
    """An explicit active code (not the buyer's own) wins; else the buyer's referrer's."""
    if referral_code and referral_code.strip():
        result = await db.execute(
            select(User).where(User.referral_code == referral_code.strip().upper())
        )
        referrer = result.scalar_one_or_none()
        if referrer and referrer.is_active and referrer.id != buyer.id:
            return referrer.referral_code

    if buyer.referred_by_id:
        referrer = await db.get(User, buyer.referred_by_id)
        if referrer and referrer.referral_code:
            return referrer.referral_code
    return None


@router.post(
    "/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED
)
@api_limit
async def checkout(
    request: Request,
    payload: CheckoutRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Place an order from the active cart.

    Reserves stock, applies discount and referral codes, computes totals and
    opens the approval task in a single transaction, then emails the customer.
    """
    payment_method = parse_payment_method(payload.payment_method)

    buyer = await db.get(User, current_user.user_uuid)
    if not buyer:
        raise HTTPException(status_code=404, detail="User not found")

    cart = await get_active_cart(db, buyer.id)
    if cart is None or not cart.items:
        raise HTTPException(status_code=400, detail="Cart is empty")

    is_wholesale = buyer.role == Role.WHOLESALE_BUYER
    errors, _warnings = await collect_cart_problems(
        db, cart, is_wholesale=is_wholesale, check_inventory=False
    )
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))

    order = Order(
        order_number=Order.generate_order_number(),
        user_id=buyer.id,
        type=OrderType.WHOLESALE if is_wholesale else OrderType.RETAIL,
        status=OrderStatus.PENDING_APPROVAL,
        payment_method=payment_method,
        payment_status=OrderPaymentStatus.PENDING,
        shipping_address=payload.shipping_address.model_dump(),
        billing_address=(
            payload.billing_address.model_dump() if payload.billing_address else None
        ),
        notes=payload.notes,
    )
    subtotal = Decimal("0")
    for cart_item in cart.items:
        unit_price = cart_item.unit_price
        line_total = quantize_money(unit_price * cart_item.quantity)
        subtotal += line_total
        order.items.append(
            OrderItem(
                product_id=cart_item.product_id,
                variation_id=cart_item.variation_id,
                product_name=cart_item.product.name,
                variation_name=cart_item.variation.name if cart_item.variation else None,
                sku=cart_item.variation.sku if cart_item.variation else None,
                unit_price=unit_price,
                quantity=cart_item.quantity,
                line_total=line_total,
            )
        )
    subtotal = quantize_money(subtotal)

    discount_amount = Decimal("0")
    if payload.discount_code:
        try:
            discount, discount_amount = await resolve_discount(
                db, payload.discount_code, subtotal, for_update=True
            )
        except DiscountError as e:
            raise HTTPException(status_code=400, detail=str(e))
        redeem_discount(discount)
        order.discount_code = discount.code

    order.applied_referral_code = await resolve_checkout_referral_code(
        db, buyer, payload.referral_code
    )

    totals = calculate_order_totals(subtotal, discount=discount_amount)
    order.subtotal = totals.subtotal
    order.shipping_cost = totals.shipping
    order.tax_amount = totals.tax
    order.discount_amount = totals.discount
    order.total_amount = totals.total

    db.add(order)
    await db.flush()

    try:
        for item in order.items:
            await reserve_order_item(db, order, item, performed_by=current_user.user_id)
    except InsufficientStockError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    record_history(
        db, order, changed_by=current_user.user_id, notes="Order placed at checkout"
    )

    await task_service.create_task(
        db,
        title=f"{task_service.APPROVE_ORDER} {order.order_number}",
        description=(
            f"{order.type.value} order for {buyer.name} totalling ${order.total_amount}"
        ),
        category=TaskCategory.ORDER_REVIEW,
        priority=TaskPriority.HIGH,
        related_to=TaskRelatedEntity.ORDER,
        related_id=order.id,
        assign_to_admin=True,
    )
    if payment_method in (PaymentMethod.E_TRANSFER, PaymentMethod.BITCOIN):
        title = (
            task_service.CONFIRM_ETRANSFER
            if payment_method == PaymentMethod.E_TRANSFER
            else task_service.CONFIRM_BITCOIN
        )
        await task_service.create_task(
            db,
            title=f"{title} {order.order_number}",
            description=f"Confirm receipt of ${order.total_amount}",
            category=TaskCategory.PAYMENT_REVIEW,
            priority=TaskPriority.HIGH,
            related_to=TaskRelatedEntity.ORDER,
            related_id=order.id,
            assign_to_admin=True,
        )

    cart.status = CartStatus.CONVERTED
    await db.commit()

    logger.info(
        "Order %s placed",
        order.order_number,
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "user_id": current_user.user_id,
                "total": str(order.total_amount),
                "payment_method": payment_method.value,
            }
        },
    )

    instructions = build_payment_instructions(
        payment_method, order.order_number, order.total_amount
    )
    await send_order_confirmation_email(
        to_email=buyer.email,
        customer_name=buyer.name,
        order_number=order.order_number,
        items=[
            {
                "name": (
                    f"{item.product_name} ({item.variation_name})"
                    if item.variation_name
                    else item.product_name
                ),
                "quantity": item.quantity,
                "line_total": item.line_total,
            }
            for item in order.items
        ],
        subtotal=order.subtotal,
        shipping=order.shipping_cost,
        tax=order.tax_amount,
        discount=order.discount_amount,
        total=order.total_amount,
        payment_instructions=instructions["message"] if instructions else None,
    )

    return CheckoutResponse(
        message="Order placed successfully",
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        total=order.total_amount,
        payment_method=payment_method,
        payment_instructions=instructions,
    )
