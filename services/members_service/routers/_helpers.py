"""Shared helpers for members routers."""

import uuid

from fastapi import HTTPException, status
from libs.auth.security import create_access_token
from services.members_service.models import User
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

MAX_REFERRAL_CODE_ATTEMPTS = 10


def issue_access_token(user: User) -> str:
    """Access token carrying the claims AuthUser reads."""
    return create_access_token(
        user.id,
        additional_claims={
            "email": user.email,
            "role": user.role.value,
            "name": user.name,
        },
    )


async def generate_unique_referral_code(db: AsyncSession) -> str:
    for _ in range(MAX_REFERRAL_CODE_ATTEMPTS):
        code = User.generate_referral_code()
        result = await db.execute(select(User.id).where(User.referral_code == code))
        if result.scalar_one_or_none() is None:
            return code
    raise RuntimeError("Could not generate a unique referral code")


async def get_user_or_404(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
        )
    return user
