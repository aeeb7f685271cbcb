"""Store cart router: the caller's active cart and its validation."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.store_service.models import Cart, CartItem, CartStatus, Product
from services.store_service.routers._helpers import get_variation
from services.store_service.schemas import (
    CartItemAdd,
    CartItemResponse,
    CartItemUpdate,
    CartResponse,
    CartValidateRequest,
    CartValidationResponse,
)
from services.store_service.services.inventory import get_available_quantity
from services.store_service.services.pricing import quantize_money
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(prefix="/cart", tags=["cart"])
settings = get_settings()

CART_LOAD_OPTIONS = (
    selectinload(Cart.items).selectinload(CartItem.product),
    selectinload(Cart.items).selectinload(CartItem.variation),
)


# ============================================================================
# CART HELPERS
# ============================================================================


async def get_active_cart(db: AsyncSession, user_id: uuid.UUID) -> Optional[Cart]:
    """Latest active cart for a user, with items, products and variations loaded."""
    result = await db.execute(
        select(Cart)
        .where(Cart.user_id == user_id, Cart.status == CartStatus.ACTIVE)
        .order_by(Cart.created_at.desc())
        .options(*CART_LOAD_OPTIONS)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_or_create_cart(db: AsyncSession, user_id: uuid.UUID) -> Cart:
    cart = await get_active_cart(db, user_id)
    if cart is None:
        cart = Cart(user_id=user_id, status=CartStatus.ACTIVE)
        cart.items = []
        db.add(cart)
        await db.flush()
    return cart


def cart_item_to_response(item: CartItem) -> CartItemResponse:
    price = item.unit_price
    return CartItemResponse(
        id=item.id,
        product_id=item.product_id,
        variation_id=item.variation_id,
        product_name=item.product.name,
        variation_name=item.variation.name if item.variation else None,
        price=price,
        quantity=item.quantity,
        subtotal=quantize_money(price * item.quantity),
        image_url=(item.variation.image_url if item.variation else None)
        or item.product.image_url,
    )


def cart_to_response(cart: Optional[Cart]) -> CartResponse:
    if cart is None:
        return CartResponse()
    items = [cart_item_to_response(item) for item in cart.items]
    return CartResponse(
        id=cart.id,
        items=items,
        subtotal=quantize_money(sum((i.subtotal for i in items), Decimal("0"))),
        item_count=len(items),
        total_quantity=sum(i.quantity for i in items),
    )


async def _get_cart_item_or_404(
    db: AsyncSession, user_id: uuid.UUID, item_id: uuid.UUID
) -> CartItem:
    result = await db.execute(
        select(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .where(
            CartItem.id == item_id,
            Cart.user_id == user_id,
            Cart.status == CartStatus.ACTIVE,
        )
    )
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return item


# ============================================================================
# CART ENDPOINTS
# ============================================================================


@router.get("", response_model=CartResponse)
@api_limit
async def get_cart(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return cart_to_response(await get_active_cart(db, current_user.user_uuid))


@router.post("", response_model=CartResponse)
@api_limit
async def add_to_cart(
    request: Request,
    payload: CartItemAdd,
    response: Response,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a product (or variation) to the cart; repeat adds increment the line."""
    if payload.quantity <= 0:
        raise HTTPException(status_code=400, detail="Quantity must be at least 1")

    product = await db.get(Product, payload.product_id)
    if not product or not product.is_active:
        raise HTTPException(status_code=404, detail="Product not found")

    if payload.variation_id is not None:
        variation = await get_variation(db, payload.variation_id, product.id)
        if not variation or not variation.is_active:
            raise HTTPException(status_code=404, detail="Product variation not found")

    cart = await get_or_create_cart(db, current_user.user_uuid)
    existing = next(
        (
            item
            for item in cart.items
            if item.product_id == payload.product_id
            and item.variation_id == payload.variation_id
        ),
        None,
    )

    if existing:
        existing.quantity += payload.quantity
        response.status_code = status.HTTP_200_OK
    else:
        db.add(
            CartItem(
                cart_id=cart.id,
                product_id=payload.product_id,
                variation_id=payload.variation_id,
                quantity=payload.quantity,
            )
        )
        response.status_code = status.HTTP_201_CREATED

    await db.commit()
    return cart_to_response(await get_active_cart(db, current_user.user_uuid))


@router.delete("")
@api_limit
async def clear_cart(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await get_active_cart(db, current_user.user_uuid)
    if cart:
        for item in list(cart.items):
            await db.delete(item)
        await db.commit()
    return {"message": "Cart cleared"}


@router.put("/{item_id}", response_model=CartResponse)
@api_limit
async def update_cart_item(
    request: Request,
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Set a line's quantity; zero or less removes the line."""
    item = await _get_cart_item_or_404(db, current_user.user_uuid, item_id)
    if payload.quantity <= 0:
        await db.delete(item)
    else:
        item.quantity = payload.quantity
    await db.commit()
    return cart_to_response(await get_active_cart(db, current_user.user_uuid))


@router.delete("/{item_id}", response_model=CartResponse)
@api_limit
async def remove_cart_item(
    request: Request,
    item_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    item = await _get_cart_item_or_404(db, current_user.user_uuid, item_id)
    await db.delete(item)
    await db.commit()
    return cart_to_response(await get_active_cart(db, current_user.user_uuid))


# ============================================================================
# VALIDATION
# ============================================================================


async def collect_cart_problems(
    db: AsyncSession,
    cart: Cart,
    *,
    is_wholesale: bool,
    check_inventory: bool,
) -> tuple[list[str], list[str]]:
    """Return (errors, warnings) for a cart about to be checked out."""
    errors: list[str] = []
    warnings: list[str] = []
    min_quantity = settings.WHOLESALE_MIN_ORDER_QUANTITY

    if not cart.items:
        errors.append("Cart is empty")
        return errors, warnings

    for item in cart.items:
        label = item.product.name
        if item.variation:
            label = f"{label} ({item.variation.name})"

        if not item.product.is_active or (
            item.variation is not None and not item.variation.is_active
        ):
            errors.append(f"{label} is no longer available")
            continue

        if is_wholesale and item.quantity < min_quantity:
            errors.append(
                f"Wholesale orders require at least {min_quantity} units of {label}"
            )

        if check_inventory:
            available = await get_available_quantity(
                db, item.product_id, item.variation_id
            )
            if available < item.quantity:
                errors.append(
                    f"Insufficient stock for {label}: "
                    f"requested {item.quantity}, available {available}"
                )
            elif available - item.quantity < min_quantity:
                warnings.append(f"Only {available} units of {label} left in stock")

    return errors, warnings


@router.post("/validate", response_model=CartValidationResponse)
@api_limit
async def validate_cart(
    request: Request,
    payload: CartValidateRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await get_active_cart(db, current_user.user_uuid)
    if cart is None:
        return CartValidationResponse(
            valid=False, errors=["Cart is empty"], warnings=[], cart=CartResponse()
        )

    errors, warnings = await collect_cart_problems(
        db,
        cart,
        is_wholesale=payload.is_wholesale,
        check_inventory=payload.check_inventory,
    )
    return CartValidationResponse(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        cart=cart_to_response(cart),
    )
