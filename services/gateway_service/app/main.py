"""FastAPI application entrypoint for the Hockey Pouches storefront API.

Members, store and payments routers are mounted in-process under ``/api``.
"""

from __future__ import annotations

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from libs.db.session import get_async_db
from services.members_service import routers as members_routers
from services.payments_service import routers as payments_routers
from services.store_service import routers as store_routers

logger = get_logger(__name__)

API_PREFIX = "/api"

ROUTERS = (
    # Members
    members_routers.auth_router,
    members_routers.users_router,
    members_routers.referrals_router,
    members_routers.admin_users_router,
    members_routers.wholesale_router,
    members_routers.wholesale_admin_router,
    members_routers.contact_router,
    # Store
    store_routers.catalog_router,
    store_routers.cart_router,
    store_routers.checkout_router,
    store_routers.orders_router,
    store_routers.admin_catalog_router,
    store_routers.admin_orders_router,
    store_routers.admin_inventory_router,
    store_routers.admin_logs_router,
    store_routers.distributor_router,
    store_routers.tasks_router,
    store_routers.uploads_router,
    # Payments
    payments_routers.intents_router,
    payments_routers.manual_router,
    payments_routers.webhooks_router,
    payments_routers.discounts_router,
    payments_routers.commissions_router,
)


async def _health_payload(db: AsyncSession) -> JSONResponse:
    settings = get_settings()
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as exc:
        logger.error("Health check database probe failed: %s", exc)
        database = "error"

    healthy = database == "ok"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "degraded",
            "timestamp": utc_now().isoformat(),
            "environment": settings.ENVIRONMENT,
            "services": {"database": database, "api": "ok"},
        },
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = get_settings()
    app = FastAPI(
        title="Hockey Pouches API",
        version="0.1.0",
        description="Storefront, order workflow and back-office API for Hockey Pouches.",
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.get(f"{API_PREFIX}/health", tags=["system"])
    async def api_health_check(db: AsyncSession = Depends(get_async_db)):
        """Readiness probe; 503 when the database does not answer."""
        return await _health_payload(db)

    for router in ROUTERS:
        app.include_router(router, prefix=API_PREFIX)

    return app


app = create_app()
