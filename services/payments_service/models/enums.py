"""Enum definitions for payments service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class PaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    PENDING_CONFIRMATION = "Pending Confirmation"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class PaymentProvider(str, enum.Enum):
    STRIPE = "stripe"
    MANUAL = "manual"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class CommissionStatus(str, enum.Enum):
    PENDING = "Pending"
    PENDING_PAYOUT = "Pending Payout"
    PAID = "Paid"
    CANCELLED = "Cancelled"


class CommissionType(str, enum.Enum):
    ORDER_REFERRAL = "Order Referral"
    WHOLESALE_REFERRAL = "Wholesale Referral"


class PayoutMethod(str, enum.Enum):
    E_TRANSFER = "e_transfer"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"
    STORE_CREDIT = "store_credit"
    OTHER = "other"
