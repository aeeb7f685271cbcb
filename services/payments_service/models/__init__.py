"""Payments Service models package."""

from services.payments_service.models.core import (
    Commission,
    DiscountCode,
    Payment,
    PayoutBatch,
    ProcessedWebhookEvent,
)
from services.payments_service.models.enums import (
    CommissionStatus,
    CommissionType,
    DiscountType,
    PaymentProvider,
    PaymentStatus,
    PayoutMethod,
)

__all__ = [
    "Commission",
    "CommissionStatus",
    "CommissionType",
    "DiscountCode",
    "DiscountType",
    "Payment",
    "PaymentProvider",
    "PaymentStatus",
    "PayoutBatch",
    "PayoutMethod",
    "ProcessedWebhookEvent",
]
