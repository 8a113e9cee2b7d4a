"""Audit log API endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from clubcore.api.dependencies import AdminActor, DbSession
from clubcore.core.correlation import build_causal_tree
from clubcore.schemas import AuditLogOut, AuditLogsListResponse
from clubcore.services.audit_service import get_audit_logs

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/logs", response_model=AuditLogsListResponse)
async def list_audit_logs(
    actor: AdminActor,
    db: DbSession,
    correlation_id: Optional[str] = Query(None, description="Filter by correlation id"),
    entity_type: Optional[str] = Query(None, description="Filter by entity type"),
    entity_id: Optional[str] = Query(None, description="Filter by entity id"),
    action_type: Optional[str] = Query(None, description="Filter by action type"),
    date_from: Optional[datetime] = Query(None, description="Filter from date"),
    date_to: Optional[datetime] = Query(None, description="Filter to date"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=200, description="Items per page"),
):
    """Audit rows, oldest first, with the causal tree they form."""
    logs, total = await get_audit_logs(
        db,
        correlation_id=correlation_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action_type=action_type,
        date_from=date_from,
        date_to=date_to,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    items = [AuditLogOut.model_validate(log) for log in logs]
    tree = build_causal_tree(item.model_dump() for item in items)
    return AuditLogsListResponse(
        logs=items,
        total=total,
        # Root steps have no parent
        causal_tree={parent or "root": children for parent, children in tree.items()},
    )
