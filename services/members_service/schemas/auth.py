"""Registration, login and token schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.members_service.models import UserRole, UserStatus


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: EmailStr
    role: UserRole
    status: UserStatus
    referral_code: Optional[str] = None
    referred_by_id: Optional[uuid.UUID] = None
    commission_rate: Optional[Decimal] = None
    wholesale_approved_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime


class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: Optional[UserRole] = None
    referral_code: Optional[str] = Field(None, max_length=16)


class RegisterResponse(BaseModel):
    message: str
    user_id: uuid.UUID
    requires_approval: bool = False


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    message: str
    user: UserResponse
    token: str
    refresh_token: str


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class RefreshResponse(BaseModel):
    message: str
    access_token: str


class VerifyResponse(BaseModel):
    verified: bool
    user: UserResponse
