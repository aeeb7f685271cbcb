"""Commission and payout schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.payments_service.models import (
    CommissionStatus,
    CommissionType,
    PayoutMethod,
)


class CommissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    order_id: uuid.UUID
    amount: Decimal
    rate: Decimal
    type: CommissionType
    status: CommissionStatus
    payout_batch_id: Optional[uuid.UUID] = None
    payment_date: Optional[datetime] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class CommissionSummary(BaseModel):
    pending: Decimal = Decimal("0.00")
    pending_payout: Decimal = Decimal("0.00")
    paid: Decimal = Decimal("0.00")
    cancelled: Decimal = Decimal("0.00")


class CommissionListResponse(BaseModel):
    commissions: list[CommissionResponse]
    summary: CommissionSummary
    total: int
    page: int
    limit: int
    total_pages: int


class PendingPayoutGroup(BaseModel):
    user_id: uuid.UUID
    name: Optional[str] = None
    email: Optional[str] = None
    total_amount: Decimal
    commission_count: int
    commissions: list[CommissionResponse]


class PayoutRequest(BaseModel):
    commission_ids: list[uuid.UUID] = Field(..., min_length=1)
    payout_method: PayoutMethod
    payout_reference: Optional[str] = Field(None, max_length=255)


class PayoutDetails(BaseModel):
    batch_id: Optional[uuid.UUID] = None
    processed_count: int
    skipped_ids: list[uuid.UUID]
    total_amount: Decimal


class PayoutResponse(BaseModel):
    message: str
    details: PayoutDetails


class CommissionCancelRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(..., min_length=1, max_length=1000)


class MyCommissionsResponse(BaseModel):
    commissions: list[CommissionResponse]
    summary: CommissionSummary
