"""Public catalog: product listing, detail and related products."""

import uuid
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.store_service.models import Product
from services.store_service.routers._helpers import (
    get_product_or_404,
    product_to_response,
)
from services.store_service.schemas import (
    ProductDetailResponse,
    ProductListResponse,
    ProductResponse,
)
from services.store_service.services.inventory import get_available_quantity
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(prefix="/products", tags=["catalog"])

SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "created_at": Product.created_at,
}


def apply_product_filters(
    query,
    *,
    category: Optional[str] = None,
    flavor: Optional[str] = None,
    strength: Optional[int] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    search: Optional[str] = None,
):
    if category:
        query = query.where(Product.category == category)
    if flavor:
        query = query.where(Product.flavor.ilike(flavor))
    if strength is not None:
        query = query.where(Product.strength == strength)
    if min_price is not None:
        query = query.where(Product.price >= min_price)
    if max_price is not None:
        query = query.where(Product.price <= max_price)
    if search:
        term = f"%{search.strip()}%"
        query = query.where(
            or_(Product.name.ilike(term), Product.description.ilike(term))
        )
    return query


def apply_sort(query, sort_by: str, sort_order: str):
    column = SORT_COLUMNS.get(sort_by, Product.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    return query.order_by(ordering, Product.id)


@router.get("", response_model=ProductListResponse)
@api_limit
async def list_products(
    request: Request,
    category: Optional[str] = None,
    flavor: Optional[str] = None,
    strength: Optional[int] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = None,
    sort_by: Literal["name", "price", "created_at"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """List active products with their active variations."""
    query = apply_product_filters(
        select(Product).where(Product.is_active.is_(True)),
        category=category,
        flavor=flavor,
        strength=strength,
        min_price=min_price,
        max_price=max_price,
        search=search,
    )
    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()

    result = await db.execute(
        apply_sort(query, sort_by, sort_order)
        .options(selectinload(Product.variations))
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return ProductListResponse(
        products=[product_to_response(p) for p in result.scalars().all()],
        **page_payload(total, page, limit),
    )


@router.get("/{product_id}", response_model=ProductDetailResponse)
@api_limit
async def get_product(
    request: Request,
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    product = await get_product_or_404(db, product_id, active_only=True)
    response = product_to_response(product)
    return ProductDetailResponse(
        **response.model_dump(),
        available_stock=await get_available_quantity(
            db, product.id, any_variation=True
        ),
    )


@router.get("/{product_id}/related", response_model=list[ProductResponse])
@api_limit
async def get_related_products(
    request: Request,
    product_id: uuid.UUID,
    limit: int = Query(4, ge=1, le=20),
    db: AsyncSession = Depends(get_async_db),
):
    """Other active products in the same category, topped up with same-flavor ones."""
    product = await get_product_or_404(db, product_id, active_only=True)

    base = (
        select(Product)
        .where(Product.is_active.is_(True), Product.id != product.id)
        .options(selectinload(Product.variations))
    )
    related: list[Product] = []
    if product.category:
        result = await db.execute(
            base.where(Product.category == product.category)
            .order_by(Product.created_at.desc())
            .limit(limit)
        )
        related.extend(result.scalars().all())

    if len(related) < limit and product.flavor:
        seen = [p.id for p in related]
        query = base.where(Product.flavor == product.flavor)
        if seen:
            query = query.where(Product.id.not_in(seen))
        result = await db.execute(
            query.order_by(Product.created_at.desc()).limit(limit - len(related))
        )
        related.extend(result.scalars().all())

    return [product_to_response(p) for p in related]
