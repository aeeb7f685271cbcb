"""Discount code schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from services.payments_service.models import DiscountType


class DiscountValidationResponse(BaseModel):
    valid: bool
    message: str
    code: Optional[str] = None
    discount_amount: Optional[Decimal] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = None
    new_subtotal: Optional[Decimal] = None


class DiscountApplyRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    order_id: uuid.UUID


class DiscountApplyResponse(BaseModel):
    message: str
    order_id: uuid.UUID
    discount_code: str
    discount_amount: Decimal
    total_amount: Decimal


class DiscountCodeBase(BaseModel):
    description: Optional[str] = Field(None, max_length=255)
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, gt=0)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, ge=1)
    is_active: bool = True


class DiscountCodeCreate(DiscountCodeBase):
    code: str = Field(..., min_length=2, max_length=50)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def check_rules(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discounts cannot exceed 100")
        if self.starts_at and self.ends_at and self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class DiscountCodeUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, gt=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, gt=0)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    usage_limit: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v


class DiscountCodeResponse(DiscountCodeBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    times_used: int
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DiscountCodeListResponse(BaseModel):
    discount_codes: list[DiscountCodeResponse]
    total: int
    page: int
    limit: int
    total_pages: int
