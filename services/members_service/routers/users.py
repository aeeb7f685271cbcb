"""Self-service profile and referral endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.auth.security import get_password_hash, verify_password
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.members_service.models import Referral, ReferralStatus
from services.members_service.routers._helpers import (
    generate_unique_referral_code,
    get_user_or_404,
)
from services.members_service.schemas import (
    MyReferralsResponse,
    ReferralLinkResponse,
    ReferralResponse,
    UserResponse,
    UserUpdateRequest,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/users", tags=["users"])
logger = get_logger(__name__)


@router.get("/me", response_model=UserResponse)
@api_limit
async def get_me(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await get_user_or_404(db, current_user.user_uuid)


@router.patch("/me", response_model=UserResponse)
@api_limit
async def update_me(
    request: Request,
    payload: UserUpdateRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update name and/or password. A new password needs the current one."""
    user = await get_user_or_404(db, current_user.user_uuid)

    if payload.name is not None:
        user.name = payload.name

    if payload.new_password:
        if not payload.current_password or not verify_password(
            payload.current_password, user.password_hash
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect",
            )
        user.password_hash = get_password_hash(payload.new_password)
        logger.info(
            "Password changed", extra={"extra_fields": {"user_id": str(user.id)}}
        )

    await db.commit()
    await db.refresh(user)
    return user


@router.get("/me/referral-link", response_model=ReferralLinkResponse)
@api_limit
async def get_referral_link(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await get_user_or_404(db, current_user.user_uuid)
    if not user.referral_code:
        user.referral_code = await generate_unique_referral_code(db)
        await db.commit()

    base_url = get_settings().PUBLIC_BASE_URL.rstrip("/")
    return ReferralLinkResponse(
        referral_code=user.referral_code,
        referral_link=f"{base_url}/ref/{user.referral_code}",
    )


@router.get("/me/referrals", response_model=MyReferralsResponse)
@api_limit
async def list_my_referrals(
    request: Request,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        select(Referral)
        .where(Referral.referrer_id == current_user.user_uuid)
        .order_by(Referral.created_at.desc())
    )
    referrals = list(result.scalars().all())

    counts = {s.value: 0 for s in ReferralStatus}
    for referral in referrals:
        counts[referral.status.value] += 1

    return MyReferralsResponse(
        referrals=[ReferralResponse.model_validate(r) for r in referrals],
        total=len(referrals),
        counts=counts,
    )
