"""Shared serialization and lookup helpers for store routers."""

import uuid
from typing import Optional

from fastapi import HTTPException
from services.store_service.models import Order, Product, ProductVariation, StockLevel
from services.store_service.schemas import ProductResponse, StockLevelResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload


def product_to_response(
    product: Product, include_inactive: bool = False
) -> ProductResponse:
    """Serialize a product; storefront responses only carry active variations."""
    response = ProductResponse.model_validate(product)
    if not include_inactive:
        response.variations = [v for v in response.variations if v.is_active]
    return response


def stock_level_to_response(level: StockLevel) -> StockLevelResponse:
    """Needs ``product``, ``variation`` and ``location`` loaded."""
    return StockLevelResponse(
        id=level.id,
        product_id=level.product_id,
        product_name=level.product.name if level.product else None,
        variation_id=level.variation_id,
        variation_name=level.variation.name if level.variation else None,
        location_id=level.location_id,
        location_name=level.location.name if level.location else None,
        quantity=level.quantity,
        reserved_quantity=level.reserved_quantity,
        available_quantity=level.available_quantity,
        reorder_point=level.reorder_point,
        is_low_stock=level.is_low_stock,
        last_recount_at=level.last_recount_at,
        updated_at=level.updated_at,
    )


STOCK_LEVEL_LOAD_OPTIONS = (
    selectinload(StockLevel.product),
    selectinload(StockLevel.variation),
    selectinload(StockLevel.location),
)


async def get_product_or_404(
    db: AsyncSession, product_id: uuid.UUID, active_only: bool = False
) -> Product:
    query = (
        select(Product)
        .where(Product.id == product_id)
        .options(selectinload(Product.variations))
        .execution_options(populate_existing=True)
    )
    if active_only:
        query = query.where(Product.is_active.is_(True))
    result = await db.execute(query)
    product = result.scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def get_variation(
    db: AsyncSession,
    variation_id: Optional[uuid.UUID],
    product_id: uuid.UUID,
) -> Optional[ProductVariation]:
    if variation_id is None:
        return None
    result = await db.execute(
        select(ProductVariation).where(
            ProductVariation.id == variation_id,
            ProductVariation.product_id == product_id,
        )
    )
    return result.scalar_one_or_none()


ORDER_DETAIL_LOAD_OPTIONS = (
    selectinload(Order.items),
    selectinload(Order.history),
    selectinload(Order.fulfillments),
)


async def get_order_or_404(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    user_id: Optional[uuid.UUID] = None,
    distributor_id: Optional[uuid.UUID] = None,
    extra_options: tuple = (),
) -> Order:
    """Load an order with items, history and fulfillments; scope by owner or distributor."""
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(*ORDER_DETAIL_LOAD_OPTIONS, *extra_options)
        .execution_options(populate_existing=True)
    )
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    if distributor_id is not None:
        query = query.where(Order.distributor_id == distributor_id)
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order
