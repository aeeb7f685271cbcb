"""Stripe PaymentIntent creation for card checkout."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.rate_limit import payment_limit
from libs.db.session import get_async_db
from services.payments_service import stripe_client
from services.payments_service.models import Payment, PaymentProvider, PaymentStatus
from services.payments_service.schemas import (
    PaymentIntentRequest,
    PaymentIntentResponse,
)
from services.store_service.models import Order, OrderStatus, PaymentMethod
from services.store_service.routers.cart import cart_to_response, get_active_cart
from services.store_service.services.pricing import (
    calculate_order_totals,
    to_minor_units,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])
logger = get_logger(__name__)


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
@payment_limit
async def create_payment_intent(
    request: Request,
    payload: PaymentIntentRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Create a Stripe PaymentIntent for an order, or for the current cart when
    no order is given. The browser confirms it with the returned client secret.
    """
    settings = get_settings()
    if not settings.stripe_enabled:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "detail": "Card payments are not available right now",
                "use_manual_payment": True,
            },
        )

    order = None
    if payload.order_id:
        order = await db.get(Order, payload.order_id)
        if not order or order.user_id != current_user.user_uuid:
            raise HTTPException(status_code=404, detail="Order not found")
        if order.is_paid:
            raise HTTPException(status_code=400, detail="Order is already paid")
        if order.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise HTTPException(
                status_code=400, detail=f"Order is {order.status.value}"
            )
        amount = to_minor_units(order.total_amount)
    else:
        cart = cart_to_response(await get_active_cart(db, current_user.user_uuid))
        if not cart.items:
            raise HTTPException(status_code=400, detail="Cart is empty")
        amount = to_minor_units(calculate_order_totals(cart.subtotal).total)

    try:
        intent = await stripe_client.get_stripe_client().create_payment_intent(
            amount=amount,
            currency=settings.CURRENCY,
            metadata={
                "user_id": current_user.user_id,
                "order_id": str(order.id) if order else None,
            },
            idempotency_key=f"order-{order.id}-{amount}" if order else None,
        )
    except stripe_client.StripeError as e:
        logger.error(
            "Could not create PaymentIntent: %s",
            e.message,
            extra={"extra_fields": {"user_id": current_user.user_id}},
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Payment provider error: {e.message}",
        )

    if order is not None:
        existing = await db.execute(
            select(Payment.id).where(Payment.transaction_id == intent.id)
        )
        if existing.first() is None:
            db.add(
                Payment(
                    order_id=order.id,
                    user_id=order.user_id,
                    amount=order.total_amount,
                    currency=settings.CURRENCY,
                    payment_method=PaymentMethod.CREDIT_CARD,
                    provider=PaymentProvider.STRIPE,
                    status=PaymentStatus.PENDING,
                    transaction_id=intent.id,
                )
            )
            await db.commit()

    return PaymentIntentResponse(
        client_secret=intent.client_secret,
        payment_intent_id=intent.id,
        amount=intent.amount or amount,
    )
