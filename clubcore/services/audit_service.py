"""Audit service for logging all committed workflow commands."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.correlation import RequestContext
from clubcore.core.security import Actor
from clubcore.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


async def log_audit(
    db: AsyncSession,
    action_type: str,  # 'membership.submit', 'leave_request.approve', 'attendance.check_in', ...
    entity_type: str,  # 'membership_application', 'leave_request', 'attendance'
    entity_id: Optional[str],
    description: str,
    actor: Optional[Actor] = None,
    context: Optional[RequestContext] = None,
    changes: Optional[Dict[str, Any]] = None,
    timestamp: Optional[datetime] = None,
) -> AuditLog:
    """
    Add an audit row to the current transaction.

    Args:
        db: Database session
        action_type: Dotted command name
        entity_type: Type of entity touched
        entity_id: ID of the entity
        description: Human-readable description
        actor: Who performed the action (None for system jobs)
        context: Trace ids of the step that produced the change
        changes: Dictionary with before/after values

    Returns:
        The pending AuditLog instance
    """
    audit_log = AuditLog(
        timestamp=timestamp or datetime.now(timezone.utc),
        user_id=actor.id if actor else None,
        user_role=actor.role.value if actor else "system",
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        changes_json=changes,
        correlation_id=context.correlation_id if context else None,
        causation_id=context.causation_id if context else None,
        parent_causation_id=context.parent_causation_id if context else None,
    )

    # No commit here: the audit row commits with the change it describes
    db.add(audit_log)

    logger.info(f"Audit log added: {action_type} {entity_type} {entity_id}")
    return audit_log


async def get_audit_logs(
    db: AsyncSession,
    correlation_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action_type: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[AuditLog], int]:
    """
    Get audit logs with filters.

    Returns:
        Tuple of (list of audit logs, total count)
    """
    filters = []

    if correlation_id:
        filters.append(AuditLog.correlation_id == correlation_id)

    if entity_type:
        filters.append(AuditLog.entity_type == entity_type)

    if entity_id:
        filters.append(AuditLog.entity_id == entity_id)

    if action_type:
        filters.append(AuditLog.action_type == action_type)

    if date_from:
        filters.append(AuditLog.timestamp >= date_from)

    if date_to:
        filters.append(AuditLog.timestamp <= date_to)

    query = select(AuditLog)
    count_query = select(func.count(AuditLog.id))
    if filters:
        query = query.where(and_(*filters))
        count_query = count_query.where(and_(*filters))

    # Oldest first so a correlation chain reads top to bottom
    query = query.order_by(AuditLog.timestamp.asc(), AuditLog.id.asc()).limit(limit).offset(offset)

    result = await db.execute(query)
    logs = result.scalars().all()

    count_result = await db.execute(count_query)
    total_count = count_result.scalar() or 0

    return list(logs), total_count


async def delete_old_audit_logs(db: AsyncSession, days: int = 365) -> int:
    """
    Delete audit logs older than specified days (default: 1 year).

    Returns:
        Number of deleted records
    """
    cutoff_date = datetime.now(timezone.utc) - timedelta(days=days)

    try:
        result = await db.execute(
            delete(AuditLog).where(AuditLog.timestamp < cutoff_date)
        )
        await db.commit()
    except Exception as e:
        logger.error(f"Failed to delete old audit logs: {e}")
        await db.rollback()
        raise

    deleted_count = result.rowcount or 0
    logger.info(f"Deleted {deleted_count} old audit logs (older than {days} days)")
    return deleted_count
