"""Payment intent, manual payment and payment record schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.payments_service.models import PaymentProvider, PaymentStatus
from services.store_service.models import PaymentMethod


class PaymentIntentRequest(BaseModel):
    order_id: Optional[uuid.UUID] = None


class PaymentIntentResponse(BaseModel):
    client_secret: Optional[str] = None
    payment_intent_id: str
    amount: int  # cents


class ManualPaymentRequest(BaseModel):
    order_id: uuid.UUID
    payment_method: Literal["ETransfer", "Bitcoin"]
    amount: Decimal = Field(..., gt=0)
    transaction_details: dict = Field(default_factory=dict)


class ManualConfirmRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    order_id: uuid.UUID
    transaction_id: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal
    currency: str
    payment_method: PaymentMethod
    status: PaymentStatus
    provider: PaymentProvider
    transaction_id: Optional[str] = None
    reference_number: Optional[str] = None
    payment_details: Optional[dict] = None
    notes: Optional[str] = None
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    created_at: datetime
