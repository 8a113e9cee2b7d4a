"""
Scheduler for periodic maintenance jobs.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clubcore.core.database import AsyncSessionLocal
from clubcore.core.settings import Settings, settings as default_settings
from clubcore.services.audit_service import delete_old_audit_logs
from clubcore.services.idempotency import IdempotencyGatekeeper

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """Cleans up expired idempotency keys and old audit rows."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        app_settings: Settings = default_settings,
    ):
        self.session_factory = session_factory
        self.settings = app_settings
        self.scheduler = AsyncIOScheduler(timezone=app_settings.timezone)
        self.is_running = False

    async def start(self):
        """Start the scheduler."""

        if self.is_running:
            logger.warning("Maintenance scheduler is already running")
            return

        logger.info("Starting maintenance scheduler...")

        self.scheduler.add_job(
            self.cleanup_idempotency_keys,
            IntervalTrigger(hours=1),
            id="cleanup_idempotency_keys",
            name="Delete expired idempotency keys",
            max_instances=1,
        )

        self.scheduler.add_job(
            self.purge_audit_logs,
            CronTrigger(hour=3, minute=0),
            id="purge_audit_logs",
            name="Delete audit rows past retention",
            max_instances=1,
        )

        self.scheduler.start()
        self.is_running = True

        logger.info(
            f"Maintenance scheduler started (idempotency TTL {self.settings.idempotency_key_ttl_hours}h, "
            f"audit retention {self.settings.audit_retention_days}d)"
        )

    async def stop(self):
        """Stop the scheduler."""

        if not self.is_running:
            return

        logger.info("Stopping maintenance scheduler...")

        self.scheduler.shutdown()
        self.is_running = False

        logger.info("Maintenance scheduler stopped")

    async def cleanup_idempotency_keys(self) -> int:
        try:
            async with self.session_factory() as db:
                gatekeeper = IdempotencyGatekeeper(db)
                return await gatekeeper.cleanup_expired(self.settings.idempotency_key_ttl_hours)
        except Exception as e:
            logger.error(f"Idempotency key cleanup failed: {e}")
            return 0

    async def purge_audit_logs(self) -> int:
        try:
            async with self.session_factory() as db:
                return await delete_old_audit_logs(db, days=self.settings.audit_retention_days)
        except Exception as e:
            logger.error(f"Audit log purge failed: {e}")
            return 0
