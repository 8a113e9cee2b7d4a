"""
Maintenance job and audit retention tests
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from clubcore.core.settings import Settings
from clubcore.models import AuditLog, IdempotencyRecord
from clubcore.services.audit_service import delete_old_audit_logs, get_audit_logs, log_audit
from clubcore.workers.maintenance_scheduler import MaintenanceScheduler


def make_settings(**overrides):
    return Settings(MAINTENANCE_ENABLED=False, **overrides)


class TestAuditService:
    """Audit rows"""

    @pytest.mark.asyncio
    async def test_log_audit_does_not_commit(self, session_factory, admin):
        async with session_factory() as db:
            await log_audit(db, "membership.submit", "membership_application", "x", "desc", actor=admin)
            await db.rollback()
            assert await db.scalar(select(func.count(AuditLog.id))) == 0

    @pytest.mark.asyncio
    async def test_filters(self, db, admin):
        await log_audit(db, "membership.submit", "membership_application", "a1", "one", actor=admin)
        await log_audit(db, "attendance.check_in", "attendance", "c1", "two", actor=admin)
        await db.commit()

        logs, total = await get_audit_logs(db, entity_type="attendance")
        assert total == 1
        assert logs[0].entity_id == "c1"
        assert logs[0].user_role == "admin"

    @pytest.mark.asyncio
    async def test_system_rows_have_system_role(self, db):
        row = await log_audit(db, "maintenance.cleanup", "idempotency_key", None, "cleanup")
        assert row.user_role == "system"
        assert row.user_id is None

    @pytest.mark.asyncio
    async def test_delete_old_rows(self, db):
        old = datetime.now(timezone.utc) - timedelta(days=400)
        await log_audit(db, "membership.submit", "membership_application", "old", "old", timestamp=old)
        await log_audit(db, "membership.submit", "membership_application", "new", "new")
        await db.commit()

        deleted = await delete_old_audit_logs(db, days=365)

        assert deleted == 1
        remaining = (await db.execute(select(AuditLog.entity_id))).scalars().all()
        assert remaining == ["new"]


class TestMaintenanceScheduler:
    """Scheduled clean-up jobs"""

    @pytest.mark.asyncio
    async def test_cleanup_jobs_use_configured_retention(self, session_factory):
        async with session_factory() as db:
            db.add(
                IdempotencyRecord(
                    key="stale-key-aaaaaaaaaa",
                    operation_id="op",
                    result={"ok": True},
                    created_at=datetime.now(timezone.utc) - timedelta(hours=30),
                )
            )
            db.add(
                IdempotencyRecord(
                    key="fresh-key-aaaaaaaaaa",
                    operation_id="op",
                    result={"ok": True},
                )
            )
            await db.commit()

        scheduler = MaintenanceScheduler(session_factory, make_settings(IDEMPOTENCY_KEY_TTL_HOURS=24))

        assert await scheduler.cleanup_idempotency_keys() == 1
        assert await scheduler.purge_audit_logs() == 0

    @pytest.mark.asyncio
    async def test_start_and_stop(self, session_factory):
        scheduler = MaintenanceScheduler(session_factory, make_settings())

        await scheduler.start()
        await scheduler.start()
        job_ids = {job.id for job in scheduler.scheduler.get_jobs()}
        await scheduler.stop()

        assert job_ids == {"cleanup_idempotency_keys", "purge_audit_logs"}
        assert not scheduler.is_running
