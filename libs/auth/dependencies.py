from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from libs.auth.models import AuthUser, Role
from libs.auth.security import ACCESS_TOKEN_TYPE, decode_token
from libs.common.config import get_settings
from libs.db.session import get_async_db

security = HTTPBearer(auto_error=False)


def _extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    """Bearer header first, then the auth cookie set at login."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().AUTH_COOKIE_NAME)


def _decode_user(token: str) -> AuthUser:
    payload = decode_token(token)
    user = AuthUser(**payload)
    if user.token_type != ACCESS_TOKEN_TYPE:
        raise JWTError("Not an access token")
    return user


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AuthUser:
    """
    Validate the access token and return its claims without touching the database.
    """
    token = _extract_token(request, credentials)
    if not token:
        raise _credentials_exception()

    try:
        user = _decode_user(token)
    except (JWTError, ValidationError):
        raise _credentials_exception()

    request.state.user = user
    return user


async def get_current_user(
    request: Request,
    token_user: Annotated[AuthUser, Depends(get_token_user)],
    db: Annotated[AsyncSession, Depends(get_async_db)],
) -> AuthUser:
    """
    Return the authenticated user as the database currently sees them.

    The account must still exist and be active; role, email and name come from
    the stored row so suspensions and role changes apply to issued tokens.
    """
    from services.members_service.models import User, UserStatus

    try:
        user_id = token_user.user_uuid
    except ValueError:
        raise _credentials_exception()

    account = await db.get(User, user_id)
    if account is None:
        raise _credentials_exception()
    if account.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {account.status.value.lower()}",
        )

    current = token_user.model_copy(
        update={"role": account.role, "email": account.email, "name": account.name}
    )
    request.state.user = current
    return current


def require_roles(*roles: Role) -> Callable:
    """Build a dependency that admits only the given roles."""
    allowed = set(roles)

    async def _checker(
        current_user: Annotated[AuthUser, Depends(get_current_user)],
    ) -> AuthUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return current_user

    return _checker


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)],
) -> AuthUser:
    if current_user.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


async def require_distributor(
    current_user: Annotated[AuthUser, Depends(get_current_user)],
) -> AuthUser:
    if current_user.role != Role.DISTRIBUTOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Distributor privileges required",
        )
    return current_user
