"""Admin inventory: stock levels per location, transfers, movements and locations."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.store_service.models import (
    AuditEntityType,
    StockLevel,
    StockLocation,
    StockMovement,
)
from services.store_service.routers._helpers import (
    STOCK_LEVEL_LOAD_OPTIONS,
    get_product_or_404,
    get_variation,
    stock_level_to_response,
)
from services.store_service.schemas import (
    ProductStockResponse,
    StockLevelCreate,
    StockLevelListResponse,
    StockLevelResponse,
    StockLevelUpdate,
    StockLocationCreate,
    StockLocationResponse,
    StockMovementListResponse,
    StockMovementResponse,
    StockTransferRequest,
    StockTransferResponse,
)
from services.store_service.services.audit import log_audit
from services.store_service.services.inventory import (
    InventoryError,
    set_stock_quantity,
    transfer_stock,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/inventory", tags=["admin-inventory"])
logger = get_logger(__name__)


async def _load_level(db: AsyncSession, level_id: uuid.UUID) -> Optional[StockLevel]:
    result = await db.execute(
        select(StockLevel)
        .where(StockLevel.id == level_id)
        .options(*STOCK_LEVEL_LOAD_OPTIONS)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_level_or_404(db: AsyncSession, level_id: uuid.UUID) -> StockLevel:
    level = await _load_level(db, level_id)
    if not level:
        raise HTTPException(status_code=404, detail="Stock level not found")
    return level


# ============================================================================
# STOCK LEVELS
# ============================================================================


@router.get("", response_model=StockLevelListResponse)
@admin_limit
async def list_stock_levels(
    request: Request,
    location_id: Optional[uuid.UUID] = None,
    product_id: Optional[uuid.UUID] = None,
    low_stock: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(StockLevel)
    if location_id:
        query = query.where(StockLevel.location_id == location_id)
    if product_id:
        query = query.where(StockLevel.product_id == product_id)
    if low_stock:
        query = query.where(
            StockLevel.reorder_point.is_not(None),
            StockLevel.quantity - StockLevel.reserved_quantity
            <= StockLevel.reorder_point,
        )

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.options(*STOCK_LEVEL_LOAD_OPTIONS)
        .order_by(StockLevel.updated_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return StockLevelListResponse(
        items=[stock_level_to_response(level) for level in result.scalars().all()],
        **page_payload(total, page, limit),
    )


@router.post("", response_model=StockLevelResponse)
@admin_limit
async def set_stock_level(
    request: Request,
    payload: StockLevelCreate,
    response: Response,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a stock level or set its quantity (201 when created)."""
    product = await get_product_or_404(db, payload.product_id)
    if payload.variation_id is not None:
        if not await get_variation(db, payload.variation_id, product.id):
            raise HTTPException(status_code=404, detail="Variation not found")
    location = await db.get(StockLocation, payload.location_id)
    if not location:
        raise HTTPException(status_code=404, detail="Location not found")

    try:
        level, created = await set_stock_quantity(
            db,
            product_id=product.id,
            variation_id=payload.variation_id,
            location_id=location.id,
            quantity=payload.quantity,
            reorder_point=payload.reorder_point,
            performed_by=current_user.user_id,
            notes=payload.notes,
        )
    except InventoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await db.flush()

    await log_audit(
        db,
        entity_type=AuditEntityType.INVENTORY,
        entity_id=level.id,
        action="stock_created" if created else "stock_set",
        performed_by=current_user.user_id,
        new_value={"quantity": payload.quantity, "location_id": str(location.id)},
        notes=payload.notes,
    )
    await db.commit()

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return stock_level_to_response(await _get_level_or_404(db, level.id))


@router.get("/by-product/{product_id}", response_model=ProductStockResponse)
@admin_limit
async def get_product_stock(
    request: Request,
    product_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await get_product_or_404(db, product_id)
    result = await db.execute(
        select(StockLevel)
        .where(StockLevel.product_id == product.id)
        .options(*STOCK_LEVEL_LOAD_OPTIONS)
    )
    levels = list(result.scalars().all())
    return ProductStockResponse(
        product_id=product.id,
        total_quantity=sum(level.quantity for level in levels),
        total_reserved=sum(level.reserved_quantity for level in levels),
        total_available=sum(level.available_quantity for level in levels),
        levels=[stock_level_to_response(level) for level in levels],
    )


@router.put("/item/{stock_level_id}", response_model=StockLevelResponse)
@admin_limit
async def update_stock_level(
    request: Request,
    stock_level_id: uuid.UUID,
    payload: StockLevelUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    level = await _get_level_or_404(db, stock_level_id)
    old_value = {"quantity": level.quantity, "reorder_point": level.reorder_point}

    if payload.quantity is not None:
        try:
            await set_stock_quantity(
                db,
                product_id=level.product_id,
                variation_id=level.variation_id,
                location_id=level.location_id,
                quantity=payload.quantity,
                reorder_point=payload.reorder_point,
                performed_by=current_user.user_id,
                notes=payload.notes,
            )
        except InventoryError as e:
            raise HTTPException(status_code=400, detail=str(e))
    elif payload.reorder_point is not None:
        level.reorder_point = payload.reorder_point

    await log_audit(
        db,
        entity_type=AuditEntityType.INVENTORY,
        entity_id=level.id,
        action="stock_updated",
        performed_by=current_user.user_id,
        old_value=old_value,
        new_value={"quantity": level.quantity, "reorder_point": level.reorder_point},
        notes=payload.notes,
    )
    await db.commit()
    return stock_level_to_response(await _get_level_or_404(db, stock_level_id))


@router.delete("/item/{stock_level_id}")
@admin_limit
async def delete_stock_level(
    request: Request,
    stock_level_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    level = await _get_level_or_404(db, stock_level_id)
    if level.reserved_quantity > 0:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete stock with {level.reserved_quantity} unit(s) reserved",
        )

    old_value = {"quantity": level.quantity, "location_id": str(level.location_id)}
    if level.quantity:
        await set_stock_quantity(
            db,
            product_id=level.product_id,
            variation_id=level.variation_id,
            location_id=level.location_id,
            quantity=0,
            performed_by=current_user.user_id,
            notes="Stock level removed",
        )
    await db.delete(level)
    await log_audit(
        db,
        entity_type=AuditEntityType.INVENTORY,
        entity_id=stock_level_id,
        action="stock_deleted",
        performed_by=current_user.user_id,
        old_value=old_value,
    )
    await db.commit()
    return {"message": "Stock level deleted"}


@router.post(
    "/transfer",
    response_model=StockTransferResponse,
    status_code=status.HTTP_201_CREATED,
)
@admin_limit
async def transfer_inventory(
    request: Request,
    payload: StockTransferRequest,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    try:
        source, destination = await transfer_stock(
            db,
            product_id=payload.product_id,
            variation_id=payload.variation_id,
            from_location_id=payload.from_location_id,
            to_location_id=payload.to_location_id,
            quantity=payload.quantity,
            performed_by=current_user.user_id,
            notes=payload.notes,
        )
    except InventoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await db.flush()

    await log_audit(
        db,
        entity_type=AuditEntityType.INVENTORY,
        entity_id=source.id,
        action="stock_transferred",
        performed_by=current_user.user_id,
        new_value={
            "quantity": payload.quantity,
            "from_location_id": str(payload.from_location_id),
            "to_location_id": str(payload.to_location_id),
        },
        notes=payload.notes,
    )
    await db.commit()

    return StockTransferResponse(
        message=f"Transferred {payload.quantity} unit(s)",
        source=stock_level_to_response(await _get_level_or_404(db, source.id)),
        destination=stock_level_to_response(
            await _get_level_or_404(db, destination.id)
        ),
    )


# ============================================================================
# MOVEMENTS
# ============================================================================


@router.get("/movements", response_model=StockMovementListResponse)
@admin_limit
async def list_movements(
    request: Request,
    product_id: Optional[uuid.UUID] = None,
    location_id: Optional[uuid.UUID] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(StockMovement)
    if product_id:
        query = query.where(StockMovement.product_id == product_id)
    if location_id:
        query = query.where(StockMovement.location_id == location_id)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(StockMovement.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return StockMovementListResponse(
        movements=[
            StockMovementResponse.model_validate(m) for m in result.scalars().all()
        ],
        **page_payload(total, page, limit),
    )


# ============================================================================
# LOCATIONS
# ============================================================================


@router.get("/locations", response_model=list[StockLocationResponse])
@admin_limit
async def list_locations(
    request: Request,
    include_inactive: bool = False,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(StockLocation).order_by(StockLocation.name.asc())
    if not include_inactive:
        query = query.where(StockLocation.is_active.is_(True))
    result = await db.execute(query)
    return result.scalars().all()


@router.post(
    "/locations",
    response_model=StockLocationResponse,
    status_code=status.HTTP_201_CREATED,
)
@admin_limit
async def create_location(
    request: Request,
    payload: StockLocationCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    location = StockLocation(**payload.model_dump())
    db.add(location)
    await db.flush()
    await log_audit(
        db,
        entity_type=AuditEntityType.INVENTORY,
        entity_id=location.id,
        action="location_created",
        performed_by=current_user.user_id,
        new_value={"name": location.name, "type": location.type.value},
    )
    await db.commit()
    await db.refresh(location)
    return location
