"""Profile, referral and admin user-management schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.members_service.models import ReferralStatus, UserRole, UserStatus
from services.members_service.schemas.auth import UserResponse

# ============================================================================
# SELF-SERVICE
# ============================================================================


class UserUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=8, max_length=128)


class ReferralLinkResponse(BaseModel):
    referral_code: str
    referral_link: str


class ReferralResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: Optional[str] = None
    referred_user_id: Optional[uuid.UUID] = None
    status: ReferralStatus
    registered_at: Optional[datetime] = None
    converted_at: Optional[datetime] = None
    created_at: datetime


class MyReferralsResponse(BaseModel):
    referrals: list[ReferralResponse]
    total: int
    counts: dict[str, int]


class ReferrerSummary(BaseModel):
    id: uuid.UUID
    name: str
    role: UserRole


class ReferralValidationResponse(BaseModel):
    valid: bool
    referrer: ReferrerSummary


# ============================================================================
# ADMIN
# ============================================================================


class AdminUserDetail(UserResponse):
    order_count: int = 0


class AdminUserListResponse(BaseModel):
    users: list[UserResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class AdminUserUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=1)
