"""Store Service schemas package."""

from services.store_service.schemas.backoffice import (
    AuditLogListResponse,
    AuditLogResponse,
    TaskCompleteRequest,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskUpdate,
    UploadResponse,
)
from services.store_service.schemas.cart import (
    CartItemAdd,
    CartItemResponse,
    CartItemUpdate,
    CartResponse,
    CartValidateRequest,
    CartValidationResponse,
)
from services.store_service.schemas.catalog import (
    ProductCreate,
    ProductDetailResponse,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    VariationCreate,
    VariationResponse,
    VariationUpdate,
)
from services.store_service.schemas.inventory import (
    ProductStockResponse,
    StockLevelCreate,
    StockLevelListResponse,
    StockLevelResponse,
    StockLevelUpdate,
    StockLocationCreate,
    StockLocationResponse,
    StockMovementListResponse,
    StockMovementResponse,
    StockTransferRequest,
    StockTransferResponse,
)
from services.store_service.schemas.orders import (
    Address,
    AdminOrderDetailResponse,
    AssignDistributorRequest,
    CheckoutRequest,
    CheckoutResponse,
    DistributorOrderDetailResponse,
    FulfillOrderRequest,
    OrderDetailResponse,
    OrderFulfillmentResponse,
    OrderItemResponse,
    OrderListResponse,
    OrderPaymentSummary,
    OrderResponse,
    OrderStatusHistoryResponse,
    OrderStatusUpdateRequest,
    ShipOrderRequest,
    UserSummary,
    VerifyFulfillmentRequest,
)

__all__ = [
    "Address",
    "AdminOrderDetailResponse",
    "AssignDistributorRequest",
    "AuditLogListResponse",
    "AuditLogResponse",
    "CartItemAdd",
    "CartItemResponse",
    "CartItemUpdate",
    "CartResponse",
    "CartValidateRequest",
    "CartValidationResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "DistributorOrderDetailResponse",
    "FulfillOrderRequest",
    "OrderDetailResponse",
    "OrderFulfillmentResponse",
    "OrderItemResponse",
    "OrderListResponse",
    "OrderPaymentSummary",
    "OrderResponse",
    "OrderStatusHistoryResponse",
    "OrderStatusUpdateRequest",
    "ProductCreate",
    "ProductDetailResponse",
    "ProductListResponse",
    "ProductResponse",
    "ProductStockResponse",
    "ProductUpdate",
    "ShipOrderRequest",
    "StockLevelCreate",
    "StockLevelListResponse",
    "StockLevelResponse",
    "StockLevelUpdate",
    "StockLocationCreate",
    "StockLocationResponse",
    "StockMovementListResponse",
    "StockMovementResponse",
    "StockTransferRequest",
    "StockTransferResponse",
    "TaskCompleteRequest",
    "TaskCreate",
    "TaskListResponse",
    "TaskResponse",
    "TaskUpdate",
    "UploadResponse",
    "UserSummary",
    "VariationCreate",
    "VariationResponse",
    "VariationUpdate",
    "VerifyFulfillmentRequest",
]
