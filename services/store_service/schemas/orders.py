"""Checkout, order, fulfillment and admin order schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from libs.auth.models import Role
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.payments_service.models.enums import PaymentStatus
from services.store_service.models import (
    FulfillmentStatus,
    OrderPaymentStatus,
    OrderStatus,
    OrderType,
    PaymentMethod,
)

# ============================================================================
# CHECKOUT
# ============================================================================


class Address(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, max_length=255)
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field("CA", min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)


class CheckoutRequest(BaseModel):
    shipping_address: Address
    billing_address: Optional[Address] = None
    payment_method: str = Field(..., description="credit_card, e_transfer or bitcoin")
    notes: Optional[str] = Field(None, max_length=2000)
    discount_code: Optional[str] = Field(None, max_length=50)
    referral_code: Optional[str] = Field(None, max_length=16)


class CheckoutResponse(BaseModel):
    message: str
    order_id: uuid.UUID
    order_number: str
    status: OrderStatus
    total: Decimal
    payment_method: PaymentMethod
    payment_instructions: Optional[dict] = None


# ============================================================================
# ORDERS
# ============================================================================


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    variation_id: Optional[uuid.UUID] = None
    product_name: str
    variation_name: Optional[str] = None
    sku: Optional[str] = None
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class OrderStatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    status: OrderStatus
    payment_status: Optional[OrderPaymentStatus] = None
    notes: Optional[str] = None
    changed_by: Optional[str] = None
    created_at: datetime


class OrderFulfillmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    distributor_id: uuid.UUID
    tracking_number: Optional[str] = None
    proof_url: Optional[str] = None
    notes: Optional[str] = None
    status: FulfillmentStatus
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID
    type: OrderType
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: OrderPaymentStatus
    subtotal: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    discount_code: Optional[str] = None
    discount_amount: Decimal
    total_amount: Decimal
    distributor_id: Optional[uuid.UUID] = None
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class OrderDetailResponse(OrderResponse):
    shipping_address: dict
    billing_address: Optional[dict] = None
    notes: Optional[str] = None
    applied_referral_code: Optional[str] = None
    fulfillment_proof_url: Optional[str] = None
    items: list[OrderItemResponse] = Field(default_factory=list)
    history: list[OrderStatusHistoryResponse] = Field(default_factory=list)


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    total: int
    page: int
    limit: int
    total_pages: int


# ============================================================================
# ADMIN / DISTRIBUTOR
# ============================================================================


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: EmailStr
    role: Role


class OrderPaymentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    amount: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    created_at: datetime


class AdminOrderDetailResponse(OrderDetailResponse):
    fulfillments: list[OrderFulfillmentResponse] = Field(default_factory=list)
    payments: list[OrderPaymentSummary] = Field(default_factory=list)
    customer: Optional[UserSummary] = None
    distributor: Optional[UserSummary] = None


class DistributorOrderDetailResponse(OrderDetailResponse):
    fulfillments: list[OrderFulfillmentResponse] = Field(default_factory=list)
    customer: Optional[UserSummary] = None


class AssignDistributorRequest(BaseModel):
    distributor_id: uuid.UUID


class VerifyFulfillmentRequest(BaseModel):
    action: Literal["approve", "reject"]
    notes: Optional[str] = Field(None, max_length=2000)


class ShipOrderRequest(BaseModel):
    tracking_number: Optional[str] = Field(None, max_length=100)
    carrier: Optional[str] = Field(None, max_length=100)


class OrderStatusUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    status: OrderStatus
    reason: str = Field(..., min_length=1, max_length=2000)


class FulfillOrderRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    tracking_number: Optional[str] = Field(None, max_length=100)
    fulfillment_proof_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)
