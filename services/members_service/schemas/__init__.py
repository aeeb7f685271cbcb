"""Members Service schemas package."""

from services.members_service.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
    VerifyResponse,
)
from services.members_service.schemas.users import (
    AdminUserDetail,
    AdminUserListResponse,
    AdminUserUpdate,
    MyReferralsResponse,
    ReferralLinkResponse,
    ReferralResponse,
    ReferralValidationResponse,
    ReferrerSummary,
    UserUpdateRequest,
)
from services.members_service.schemas.wholesale import (
    BusinessAddress,
    ContactRequest,
    WholesaleApplicationListResponse,
    WholesaleApplicationResponse,
    WholesaleApplyRequest,
    WholesaleApplyResponse,
    WholesaleRejectRequest,
)

__all__ = [
    "AdminUserDetail",
    "AdminUserListResponse",
    "AdminUserUpdate",
    "BusinessAddress",
    "ContactRequest",
    "LoginRequest",
    "LoginResponse",
    "MyReferralsResponse",
    "RefreshRequest",
    "RefreshResponse",
    "ReferralLinkResponse",
    "ReferralResponse",
    "ReferralValidationResponse",
    "ReferrerSummary",
    "RegisterRequest",
    "RegisterResponse",
    "UserResponse",
    "UserUpdateRequest",
    "VerifyResponse",
    "WholesaleApplicationListResponse",
    "WholesaleApplicationResponse",
    "WholesaleApplyRequest",
    "WholesaleApplyResponse",
    "WholesaleRejectRequest",
]
