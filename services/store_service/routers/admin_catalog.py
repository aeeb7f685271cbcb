"""Admin catalog management: products and variations."""

import uuid
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.store_service.models import (
    AuditEntityType,
    OrderItem,
    Product,
    ProductVariation,
)
from services.store_service.routers._helpers import (
    get_product_or_404,
    product_to_response,
)
from services.store_service.routers.catalog import apply_product_filters, apply_sort
from services.store_service.schemas import (
    ProductCreate,
    ProductDetailResponse,
    ProductListResponse,
    ProductUpdate,
    VariationCreate,
    VariationResponse,
    VariationUpdate,
)
from services.store_service.services.audit import log_audit
from services.store_service.services.inventory import get_available_quantity
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(prefix="/admin/products", tags=["admin-catalog"])
logger = get_logger(__name__)


def _jsonable(data: dict) -> dict:
    return {
        k: (str(v) if isinstance(v, (Decimal, uuid.UUID)) else v)
        for k, v in data.items()
    }


async def _ensure_variation_unique(
    db: AsyncSession,
    product_id: uuid.UUID,
    flavor: Optional[str],
    strength: Optional[int],
    sku: Optional[str],
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    query = select(ProductVariation.id).where(ProductVariation.product_id == product_id)
    query = query.where(
        ProductVariation.flavor.is_(None)
        if flavor is None
        else ProductVariation.flavor == flavor
    )
    query = query.where(
        ProductVariation.strength.is_(None)
        if strength is None
        else ProductVariation.strength == strength
    )
    if exclude_id:
        query = query.where(ProductVariation.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A variation with this flavor and strength already exists",
        )

    if sku:
        sku_query = select(ProductVariation.id).where(ProductVariation.sku == sku)
        if exclude_id:
            sku_query = sku_query.where(ProductVariation.id != exclude_id)
        if (await db.execute(sku_query)).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"SKU {sku} is already in use",
            )


async def _product_has_orders(db: AsyncSession, product_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(OrderItem.id).where(OrderItem.product_id == product_id).limit(1)
    )
    return result.first() is not None


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("", response_model=ProductListResponse)
@admin_limit
async def list_products_admin(
    request: Request,
    category: Optional[str] = None,
    flavor: Optional[str] = None,
    strength: Optional[int] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    sort_by: Literal["name", "price", "created_at"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List products including inactive ones."""
    query = apply_product_filters(
        select(Product),
        category=category,
        flavor=flavor,
        strength=strength,
        min_price=min_price,
        max_price=max_price,
        search=search,
    )
    if is_active is not None:
        query = query.where(Product.is_active.is_(is_active))

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
        products=[
            product_to_response(p, include_inactive=True)
            for p in result.scalars().all()
        ],
        **page_payload(total, page, limit),
    )


@router.post(
    "", response_model=ProductDetailResponse, status_code=status.HTTP_201_CREATED
)
@admin_limit
async def create_product(
    request: Request,
    payload: ProductCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a product, optionally with its variations."""
    seen_combos = set()
    seen_skus = set()
    for variation_in in payload.variations:
        combo = (variation_in.flavor, variation_in.strength)
        if combo in seen_combos or (variation_in.sku and variation_in.sku in seen_skus):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Duplicate variation in request",
            )
        seen_combos.add(combo)
        if variation_in.sku:
            seen_skus.add(variation_in.sku)
            existing = await db.execute(
                select(ProductVariation.id).where(
                    ProductVariation.sku == variation_in.sku
                )
            )
            if existing.first():
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"SKU {variation_in.sku} is already in use",
                )

    product = Product(**payload.model_dump(exclude={"variations"}))
    product.variations = [ProductVariation(**v.model_dump()) for v in payload.variations]
    db.add(product)
    await db.flush()

    await log_audit(
        db,
        entity_type=AuditEntityType.PRODUCT,
        entity_id=product.id,
        action="product_created",
        performed_by=current_user.user_id,
        new_value=_jsonable(payload.model_dump(exclude={"variations"})),
    )
    await db.commit()

    product = await get_product_or_404(db, product.id)
    return ProductDetailResponse(
        **product_to_response(product, include_inactive=True).model_dump(),
        available_stock=0,
    )


@router.get("/{product_id}", response_model=ProductDetailResponse)
@admin_limit
async def get_product_admin(
    request: Request,
    product_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await get_product_or_404(db, product_id)
    return ProductDetailResponse(
        **product_to_response(product, include_inactive=True).model_dump(),
        available_stock=await get_available_quantity(
            db, product.id, any_variation=True
        ),
    )


@router.put("/{product_id}", response_model=ProductDetailResponse)
@admin_limit
async def update_product(
    request: Request,
    product_id: uuid.UUID,
    payload: ProductUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await get_product_or_404(db, product_id)
    changes = payload.model_dump(exclude_unset=True)
    old_value = {field: getattr(product, field) for field in changes}

    for field, value in changes.items():
        setattr(product, field, value)

    await log_audit(
        db,
        entity_type=AuditEntityType.PRODUCT,
        entity_id=product.id,
        action="product_updated",
        performed_by=current_user.user_id,
        old_value=_jsonable(old_value),
        new_value=_jsonable(changes),
    )
    await db.commit()

    product = await get_product_or_404(db, product_id)
    return ProductDetailResponse(
        **product_to_response(product, include_inactive=True).model_dump(),
        available_stock=await get_available_quantity(
            db, product.id, any_variation=True
        ),
    )


@router.delete("/{product_id}")
@admin_limit
async def delete_product(
    request: Request,
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a product; products already ordered are deactivated instead."""
    product = await get_product_or_404(db, product_id)

    if await _product_has_orders(db, product.id):
        product.is_active = False
        for variation in product.variations:
            variation.is_active = False
        action, message, deactivated = (
            "product_deactivated",
            "Product has existing orders and was deactivated instead",
            True,
        )
    else:
        await db.delete(product)
        action, message, deactivated = "product_deleted", "Product deleted", False

    await log_audit(
        db,
        entity_type=AuditEntityType.PRODUCT,
        entity_id=product_id,
        action=action,
        performed_by=current_user.user_id,
        old_value={"name": product.name},
    )
    await db.commit()
    return {"message": message, "deactivated": deactivated}


# ============================================================================
# VARIATIONS
# ============================================================================


async def _get_variation_or_404(
    db: AsyncSession, variation_id: uuid.UUID
) -> ProductVariation:
    variation = await db.get(ProductVariation, variation_id)
    if not variation:
        raise HTTPException(status_code=404, detail="Variation not found")
    return variation


@router.get("/{product_id}/variations", response_model=list[VariationResponse])
@admin_limit
async def list_variations(
    request: Request,
    product_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await get_product_or_404(db, product_id)
    return product.variations


@router.post(
    "/{product_id}/variations",
    response_model=VariationResponse,
    status_code=status.HTTP_201_CREATED,
)
@admin_limit
async def create_variation(
    request: Request,
    product_id: uuid.UUID,
    payload: VariationCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await get_product_or_404(db, product_id)
    await _ensure_variation_unique(
        db, product.id, payload.flavor, payload.strength, payload.sku
    )

    variation = ProductVariation(product_id=product.id, **payload.model_dump())
    db.add(variation)
    await db.flush()

    await log_audit(
        db,
        entity_type=AuditEntityType.VARIATION,
        entity_id=variation.id,
        action="variation_created",
        performed_by=current_user.user_id,
        new_value=_jsonable(payload.model_dump()),
    )
    await db.commit()
    await db.refresh(variation)
    return variation


@router.put("/variations/{variation_id}", response_model=VariationResponse)
@admin_limit
async def update_variation(
    request: Request,
    variation_id: uuid.UUID,
    payload: VariationUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    variation = await _get_variation_or_404(db, variation_id)
    changes = payload.model_dump(exclude_unset=True)

    if {"flavor", "strength", "sku"} & changes.keys():
        await _ensure_variation_unique(
            db,
            variation.product_id,
            changes.get("flavor", variation.flavor),
            changes.get("strength", variation.strength),
            changes.get("sku") if "sku" in changes else None,
            exclude_id=variation.id,
        )

    old_value = {field: getattr(variation, field) for field in changes}
    for field, value in changes.items():
        setattr(variation, field, value)

    await log_audit(
        db,
        entity_type=AuditEntityType.VARIATION,
        entity_id=variation.id,
        action="variation_updated",
        performed_by=current_user.user_id,
        old_value=_jsonable(old_value),
        new_value=_jsonable(changes),
    )
    await db.commit()
    await db.refresh(variation)
    return variation


@router.delete("/variations/{variation_id}")
@admin_limit
async def delete_variation(
    request: Request,
    variation_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    variation = await _get_variation_or_404(db, variation_id)

    ordered = await db.execute(
        select(OrderItem.id).where(OrderItem.variation_id == variation.id).limit(1)
    )
    if ordered.first():
        variation.is_active = False
        action, message, deactivated = (
            "variation_deactivated",
            "Variation has existing orders and was deactivated instead",
            True,
        )
    else:
        await db.delete(variation)
        action, message, deactivated = "variation_deleted", "Variation deleted", False

    await log_audit(
        db,
        entity_type=AuditEntityType.VARIATION,
        entity_id=variation_id,
        action=action,
        performed_by=current_user.user_id,
        old_value={"name": variation.name, "sku": variation.sku},
    )
    await db.commit()
    return {"message": message, "deactivated": deactivated}
