"""Store service routers package."""

from services.store_service.routers.admin_catalog import router as admin_catalog_router
from services.store_service.routers.admin_inventory import (
    router as admin_inventory_router,
)
from services.store_service.routers.admin_logs import router as admin_logs_router
from services.store_service.routers.admin_orders import router as admin_orders_router
from services.store_service.routers.cart import router as cart_router
from services.store_service.routers.catalog import router as catalog_router
from services.store_service.routers.checkout import router as checkout_router
from services.store_service.routers.distributor import router as distributor_router
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.tasks import router as tasks_router
from services.store_service.routers.uploads import router as uploads_router

__all__ = [
    "admin_catalog_router",
    "admin_inventory_router",
    "admin_logs_router",
    "admin_orders_router",
    "cart_router",
    "catalog_router",
    "checkout_router",
    "distributor_router",
    "orders_router",
    "tasks_router",
    "uploads_router",
]
