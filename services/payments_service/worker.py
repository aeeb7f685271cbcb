"""ARQ worker for commission release, order expiry and payment reconciliation."""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


async def task_release_commissions(ctx: dict):
    from services.payments_service.tasks import release_commissions_for_delivered_orders

    logger.info("Running: release_commissions_for_delivered_orders")
    await release_commissions_for_delivered_orders()


async def task_expire_stale_orders(ctx: dict):
    from services.payments_service.tasks import expire_stale_orders

    logger.info("Running: expire_stale_orders")
    await expire_stale_orders()


async def task_reconcile_pending_payments(ctx: dict):
    from services.payments_service.tasks import reconcile_pending_stripe_payments

    logger.info("Running: reconcile_pending_stripe_payments")
    await reconcile_pending_stripe_payments()


class WorkerSettings:
    redis_settings = get_redis_settings()

    functions = [
        task_release_commissions,
        task_expire_stale_orders,
        task_reconcile_pending_payments,
    ]

    cron_jobs = [
        cron(task_release_commissions, minute=5, run_at_startup=True),
        cron(task_expire_stale_orders, minute={10, 40}),
        cron(task_reconcile_pending_payments, minute={0, 15, 30, 45}),
    ]
