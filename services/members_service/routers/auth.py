"""Registration, login, token refresh and session verification."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from jose import JWTError
from libs.auth.dependencies import get_token_user
from libs.auth.models import AuthUser
from libs.auth.security import (
    REFRESH_TOKEN_TYPE,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.rate_limit import auth_limit
from libs.db.session import get_async_db
from services.members_service.models import (
    Referral,
    ReferralStatus,
    User,
    UserRole,
    UserStatus,
)
from services.members_service.routers._helpers import (
    generate_unique_referral_code,
    get_user_or_404,
    issue_access_token,
)
from services.members_service.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
    VerifyResponse,
)
from services.store_service.models import TaskCategory, TaskRelatedEntity
from services.store_service.services import tasks as task_service
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)

SELF_REGISTER_ROLES = {
    UserRole.CUSTOMER,
    UserRole.DISTRIBUTOR,
    UserRole.RETAIL_REFERRER,
}
APPROVAL_REQUIRED_ROLES = {UserRole.DISTRIBUTOR}


def _ensure_active(user: User) -> None:
    if user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {user.status.value.lower()}. Please contact support.",
        )


# ============================================================================
# REGISTRATION
# ============================================================================


@router.post(
    "/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED
)
@auth_limit
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Create an account.

    Distributors start Pending until an admin approves them. A referral code,
    when given and known, links the new user to their referrer.
    """
    role = payload.role or UserRole.CUSTOMER
    if role not in SELF_REGISTER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot self-register with role {role.value}",
        )

    email = payload.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )

    requires_approval = role in APPROVAL_REQUIRED_ROLES
    user = User(
        name=payload.name,
        email=email,
        password_hash=get_password_hash(payload.password),
        role=role,
        status=UserStatus.PENDING if requires_approval else UserStatus.ACTIVE,
        referral_code=await generate_unique_referral_code(db),
    )

    referrer = None
    if payload.referral_code:
        code = payload.referral_code.strip().upper()
        result = await db.execute(select(User).where(User.referral_code == code))
        referrer = result.scalar_one_or_none()
        if referrer is None:
            logger.warning(
                "Registration with unknown referral code",
                extra={"extra_fields": {"referral_code": code, "email": email}},
            )
        else:
            user.referred_by_id = referrer.id

    db.add(user)
    await db.flush()

    if referrer is not None:
        result = await db.execute(
            select(Referral).where(
                Referral.referrer_id == referrer.id,
                Referral.email == email,
                Referral.status == ReferralStatus.PENDING,
            )
        )
        referral = result.scalars().first()
        if referral is None:
            referral = Referral(
                referrer_id=referrer.id,
                email=email,
                referral_code=referrer.referral_code,
            )
            db.add(referral)
        referral.referred_user_id = user.id
        referral.name = user.name
        referral.status = ReferralStatus.REGISTERED
        referral.registered_at = utc_now()

    if requires_approval:
        await task_service.create_task(
            db,
            title=f"{task_service.REVIEW_DISTRIBUTOR}: {user.name}",
            description=f"New distributor account {user.email} is awaiting approval.",
            category=TaskCategory.USER_MANAGEMENT,
            related_to=TaskRelatedEntity.USER,
            related_id=user.id,
            assign_to_admin=True,
        )

    await db.commit()

    logger.info(
        "User registered",
        extra={"extra_fields": {"user_id": str(user.id), "role": role.value}},
    )
    return RegisterResponse(
        message=(
            "Registration successful. Your account is pending approval."
            if requires_approval
            else "Registration successful."
        ),
        user_id=user.id,
        requires_approval=requires_approval,
    )


# ============================================================================
# SESSIONS
# ============================================================================


@router.post("/login", response_model=LoginResponse)
@auth_limit
async def login(
    request: Request,
    response: Response,
    payload: LoginRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Exchange credentials for an access token, refresh token and auth cookie."""
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials."
        )
    _ensure_active(user)

    user.last_login_at = utc_now()
    await db.commit()
    await db.refresh(user)

    settings = get_settings()
    token = issue_access_token(user)
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    return LoginResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        token=token,
        refresh_token=create_refresh_token(user.id),
    )


@router.post("/refresh", response_model=RefreshResponse)
@auth_limit
async def refresh_token(
    request: Request,
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_async_db),
):
    invalid = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired refresh token",
    )
    try:
        claims = decode_token(payload.refresh_token)
        user_id = uuid.UUID(str(claims.get("sub")))
    except (JWTError, ValueError):
        raise invalid
    if claims.get("type") != REFRESH_TOKEN_TYPE:
        raise invalid

    user = await get_user_or_404(db, user_id)
    _ensure_active(user)

    return RefreshResponse(
        message="Token refreshed", access_token=issue_access_token(user)
    )


@router.get("/verify", response_model=VerifyResponse)
async def verify_session(
    current_user: AuthUser = Depends(get_token_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Confirm the caller's token still maps to an active account."""
    user = await get_user_or_404(db, current_user.user_uuid)
    _ensure_active(user)
    return VerifyResponse(verified=True, user=UserResponse.model_validate(user))


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(key=get_settings().AUTH_COOKIE_NAME, path="/")
    return {"message": "Logged out successfully"}
