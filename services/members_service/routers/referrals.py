"""Public referral code validation."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.members_service.models import User
from services.members_service.schemas import (
    ReferralValidationResponse,
    ReferrerSummary,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.get("/validate", response_model=ReferralValidationResponse)
@api_limit
async def validate_referral_code(
    request: Request,
    code: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_db),
):
    if not code or not code.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Referral code is required",
        )

    result = await db.execute(
        select(User).where(User.referral_code == code.strip().upper())
    )
    referrer = result.scalar_one_or_none()
    if not referrer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Invalid referral code"
        )
    if not referrer.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This referral code is no longer active",
        )

    return ReferralValidationResponse(
        valid=True,
        referrer=ReferrerSummary(id=referrer.id, name=referrer.name, role=referrer.role),
    )
