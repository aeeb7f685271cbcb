"""Discount code validation, application to orders, and admin CRUD."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.pagination import page_offset, page_payload
from libs.common.rate_limit import admin_limit, api_limit
from libs.db.session import get_async_db
from services.payments_service.models import DiscountCode
from services.payments_service.schemas import (
    DiscountApplyRequest,
    DiscountApplyResponse,
    DiscountCodeCreate,
    DiscountCodeListResponse,
    DiscountCodeResponse,
    DiscountCodeUpdate,
    DiscountValidationResponse,
)
from services.payments_service.services.discounts import (
    DiscountError,
    normalize_code,
    redeem_discount,
    resolve_discount,
)
from services.store_service.models import AuditEntityType, OrderStatus
from services.store_service.services.audit import log_audit
from services.store_service.services.order_workflow import (
    load_order_for_update,
    record_history,
)
from services.store_service.services.pricing import (
    calculate_order_totals,
    quantize_money,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["discounts"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Storefront
# ---------------------------------------------------------------------------


@router.get("/discount/validate", response_model=DiscountValidationResponse)
@api_limit
async def validate_discount(
    request: Request,
    code: Optional[str] = None,
    subtotal: Decimal = Query(Decimal("0"), ge=0),
    db: AsyncSession = Depends(get_async_db),
):
    """Check a code against a subtotal. Never increments usage."""
    if not code or not code.strip():
        return DiscountValidationResponse(
            valid=False, message="Discount code is required"
        )

    try:
        discount, amount = await resolve_discount(db, code, subtotal)
    except DiscountError as e:
        return DiscountValidationResponse(
            valid=False, message=str(e), code=normalize_code(code)
        )

    return DiscountValidationResponse(
        valid=True,
        message="Discount code applied",
        code=discount.code,
        discount_amount=amount,
        discount_type=discount.discount_type,
        discount_value=discount.discount_value,
        new_subtotal=quantize_money(subtotal) - amount,
    )


@router.post("/discount/apply", response_model=DiscountApplyResponse)
@api_limit
async def apply_discount(
    request: Request,
    payload: DiscountApplyRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Apply a code to the caller's unpaid order and recompute its total."""
    order = await load_order_for_update(db, payload.order_id)
    if not order or order.user_id != current_user.user_uuid:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.is_paid:
        raise HTTPException(status_code=400, detail="Order is already paid")
    if order.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        raise HTTPException(status_code=400, detail=f"Order is {order.status.value}")
    if order.discount_code:
        raise HTTPException(
            status_code=400, detail="A discount has already been applied to this order"
        )

    try:
        discount, amount = await resolve_discount(
            db, payload.code, order.subtotal, for_update=True
        )
    except DiscountError as e:
        raise HTTPException(status_code=400, detail=str(e))

    totals = calculate_order_totals(
        order.subtotal, discount=amount, shipping=order.shipping_cost
    )
    order.discount_code = discount.code
    order.discount_amount = totals.discount
    order.tax_amount = totals.tax
    order.total_amount = totals.total
    redeem_discount(discount)

    record_history(
        db,
        order,
        changed_by=current_user.user_id,
        notes=f"Discount {discount.code} applied (-${totals.discount})",
    )
    await log_audit(
        db,
        entity_type=AuditEntityType.ORDER,
        entity_id=order.id,
        action="discount_applied",
        performed_by=current_user.user_id,
        new_value={"code": discount.code, "amount": str(totals.discount)},
    )
    await db.commit()

    return DiscountApplyResponse(
        message="Discount applied",
        order_id=order.id,
        discount_code=discount.code,
        discount_amount=order.discount_amount,
        total_amount=order.total_amount,
    )


# ---------------------------------------------------------------------------
# Admin CRUD
# ---------------------------------------------------------------------------


async def _get_discount_or_404(db: AsyncSession, discount_id: uuid.UUID) -> DiscountCode:
    discount = await db.get(DiscountCode, discount_id)
    if not discount:
        raise HTTPException(status_code=404, detail="Discount code not found")
    return discount


async def _ensure_code_free(
    db: AsyncSession, code: str, exclude_id: Optional[uuid.UUID] = None
) -> None:
    query = select(DiscountCode.id).where(DiscountCode.code == code)
    if exclude_id:
        query = query.where(DiscountCode.id != exclude_id)
    if (await db.execute(query)).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Discount code {code} already exists",
        )


@router.get("/admin/discount-codes", response_model=DiscountCodeListResponse)
@admin_limit
async def list_discount_codes(
    request: Request,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(DiscountCode)
    if is_active is not None:
        query = query.where(DiscountCode.is_active.is_(is_active))

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(DiscountCode.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    return DiscountCodeListResponse(
        discount_codes=[
            DiscountCodeResponse.model_validate(d) for d in result.scalars().all()
        ],
        **page_payload(total, page, limit),
    )


@router.post(
    "/admin/discount-codes",
    response_model=DiscountCodeResponse,
    status_code=status.HTTP_201_CREATED,
)
@admin_limit
async def create_discount_code(
    request: Request,
    payload: DiscountCodeCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    await _ensure_code_free(db, payload.code)

    discount = DiscountCode(**payload.model_dump(), created_by=current_user.user_id)
    db.add(discount)
    await db.flush()
    await log_audit(
        db,
        entity_type=AuditEntityType.DISCOUNT_CODE,
        entity_id=discount.id,
        action="discount_created",
        performed_by=current_user.user_id,
        new_value=payload.model_dump(mode="json"),
    )
    await db.commit()
    await db.refresh(discount)
    return discount


@router.get("/admin/discount-codes/{discount_id}", response_model=DiscountCodeResponse)
@admin_limit
async def get_discount_code(
    request: Request,
    discount_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await _get_discount_or_404(db, discount_id)


@router.put("/admin/discount-codes/{discount_id}", response_model=DiscountCodeResponse)
@admin_limit
async def update_discount_code(
    request: Request,
    discount_id: uuid.UUID,
    payload: DiscountCodeUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    discount = await _get_discount_or_404(db, discount_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("code") and changes["code"] != discount.code:
        await _ensure_code_free(db, changes["code"], exclude_id=discount.id)

    old_value = DiscountCodeResponse.model_validate(discount).model_dump(
        mode="json", include=set(changes)
    )
    for field, value in changes.items():
        setattr(discount, field, value)

    await log_audit(
        db,
        entity_type=AuditEntityType.DISCOUNT_CODE,
        entity_id=discount.id,
        action="discount_updated",
        performed_by=current_user.user_id,
        old_value=old_value,
        new_value=payload.model_dump(mode="json", exclude_unset=True),
    )
    await db.commit()
    await db.refresh(discount)
    return discount


@router.delete("/admin/discount-codes/{discount_id}")
@admin_limit
async def delete_discount_code(
    request: Request,
    discount_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete an unused code; codes already redeemed are deactivated instead."""
    discount = await _get_discount_or_404(db, discount_id)
    code = discount.code

    if discount.times_used:
        discount.is_active = False
        action, message, deactivated = (
            "discount_deactivated",
            f"Discount code {code} has been used and was deactivated instead",
            True,
        )
    else:
        await db.delete(discount)
        action, message, deactivated = (
            "discount_deleted",
            f"Discount code {code} deleted",
            False,
        )

    await log_audit(
        db,
        entity_type=AuditEntityType.DISCOUNT_CODE,
        entity_id=discount_id,
        action=action,
        performed_by=current_user.user_id,
        old_value={"code": code},
    )
    await db.commit()
    return {"message": message, "deactivated": deactivated}
