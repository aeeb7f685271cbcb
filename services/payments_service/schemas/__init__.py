"""Payments Service schemas package."""

from services.payments_service.schemas.commissions import (
    CommissionCancelRequest,
    CommissionListResponse,
    CommissionResponse,
    CommissionSummary,
    MyCommissionsResponse,
    PayoutDetails,
    PayoutRequest,
    PayoutResponse,
    PendingPayoutGroup,
)
from services.payments_service.schemas.discounts import (
    DiscountApplyRequest,
    DiscountApplyResponse,
    DiscountCodeCreate,
    DiscountCodeListResponse,
    DiscountCodeResponse,
    DiscountCodeUpdate,
    DiscountValidationResponse,
)
from services.payments_service.schemas.payments import (
    ManualConfirmRequest,
    ManualPaymentRequest,
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentResponse,
)

__all__ = [
    "CommissionCancelRequest",
    "CommissionListResponse",
    "CommissionResponse",
    "CommissionSummary",
    "DiscountApplyRequest",
    "DiscountApplyResponse",
    "DiscountCodeCreate",
    "DiscountCodeListResponse",
    "DiscountCodeResponse",
    "DiscountCodeUpdate",
    "DiscountValidationResponse",
    "ManualConfirmRequest",
    "ManualPaymentRequest",
    "MyCommissionsResponse",
    "PaymentIntentRequest",
    "PaymentIntentResponse",
    "PaymentResponse",
    "PayoutDetails",
    "PayoutRequest",
    "PayoutResponse",
    "PendingPayoutGroup",
]
