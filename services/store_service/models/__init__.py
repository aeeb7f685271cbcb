"""Store Service models package."""

from services.store_service.models.backoffice import AuditLog, Task
from services.store_service.models.catalog import Product, ProductVariation
from services.store_service.models.commerce import (
    Cart,
    CartItem,
    Order,
    OrderFulfillment,
    OrderItem,
    OrderStatusHistory,
)
from services.store_service.models.enums import (
    AuditEntityType,
    CartStatus,
    FulfillmentStatus,
    OrderPaymentStatus,
    OrderStatus,
    OrderType,
    PaymentMethod,
    StockLocationType,
    StockMovementType,
    TaskCategory,
    TaskPriority,
    TaskRelatedEntity,
    TaskStatus,
)
from services.store_service.models.inventory import (
    StockLevel,
    StockLocation,
    StockMovement,
)

__all__ = [
    "AuditEntityType",
    "AuditLog",
    "Cart",
    "CartItem",
    "CartStatus",
    "FulfillmentStatus",
    "Order",
    "OrderFulfillment",
    "OrderItem",
    "OrderPaymentStatus",
    "OrderStatus",
    "OrderStatusHistory",
    "OrderType",
    "PaymentMethod",
    "Product",
    "ProductVariation",
    "StockLevel",
    "StockLocation",
    "StockLocationType",
    "StockMovement",
    "StockMovementType",
    "Task",
    "TaskCategory",
    "TaskPriority",
    "TaskRelatedEntity",
    "TaskStatus",
]
