"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class StockLocationType(str, enum.Enum):
    WAREHOUSE = "Warehouse"
    STOREFRONT = "Storefront"
    DISTRIBUTOR = "Distributor"


class StockMovementType(str, enum.Enum):
    RESTOCK = "restock"
    SALE = "sale"
    RESERVATION = "reservation"
    RELEASE = "release"
    ADJUSTMENT = "adjustment"
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"


class CartStatus(str, enum.Enum):
    ACTIVE = "active"
    CONVERTED = "converted"
    ABANDONED = "abandoned"


class OrderStatus(str, enum.Enum):
    PENDING_APPROVAL = "Pending Approval"
    PROCESSING = "Processing"
    READY_FOR_FULFILLMENT = "Ready for Fulfillment"
    AWAITING_FULFILLMENT = "Awaiting Fulfillment"
    PENDING_FULFILLMENT_VERIFICATION = "Pending Fulfillment Verification"
    AWAITING_SHIPMENT = "Awaiting Shipment"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class OrderType(str, enum.Enum):
    RETAIL = "Retail"
    WHOLESALE = "Wholesale"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "CreditCard"
    E_TRANSFER = "ETransfer"
    BITCOIN = "Bitcoin"


class OrderPaymentStatus(str, enum.Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class FulfillmentStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class TaskStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TaskPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class TaskCategory(str, enum.Enum):
    ORDER_REVIEW = "Order Review"
    FULFILLMENT = "Fulfillment"
    PAYMENT_REVIEW = "Payment Review"
    PAYOUT = "Payout"
    USER_MANAGEMENT = "User Management"
    OTHER = "Other"


class TaskRelatedEntity(str, enum.Enum):
    ORDER = "Order"
    USER = "User"
    PAYMENT = "Payment"
    COMMISSION = "Commission"
    WHOLESALE_APPLICATION = "Wholesale Application"


class AuditEntityType(str, enum.Enum):
    PRODUCT = "product"
    VARIATION = "variation"
    INVENTORY = "inventory"
    ORDER = "order"
    USER = "user"
    WHOLESALE_APPLICATION = "wholesale_application"
    DISCOUNT_CODE = "discount_code"
    PAYMENT = "payment"
    COMMISSION = "commission"
    TASK = "task"
