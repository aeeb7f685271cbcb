"""Wholesale application and contact form schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.members_service.models import WholesaleApplicationStatus


class BusinessAddress(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)


class WholesaleApplyRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    business_name: str = Field(..., min_length=1, max_length=255)
    tax_id: Optional[str] = Field(None, max_length=100)
    business_type: str = Field(..., min_length=1, max_length=100)
    address: BusinessAddress
    phone: str = Field(..., min_length=1, max_length=50)
    website: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)


class WholesaleApplyResponse(BaseModel):
    success: bool = True
    message: str
    application_id: uuid.UUID


class WholesaleApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    business_name: str
    tax_id: Optional[str] = None
    business_type: str
    address: dict
    phone: str
    website: Optional[str] = None
    notes: Optional[str] = None
    status: WholesaleApplicationStatus
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime


class WholesaleApplicationListResponse(BaseModel):
    applications: list[WholesaleApplicationResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class WholesaleRejectRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(..., min_length=1, max_length=2000)


class ContactRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    subject: Optional[str] = Field(None, max_length=255)
    message: str = Field(..., min_length=1, max_length=5000)
