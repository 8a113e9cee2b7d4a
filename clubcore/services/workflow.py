"""Shared state machine for workflow entities.

``pending -> approved | rejected``; both targets are terminal. Every
transition is one compare-and-swap UPDATE guarded by the row ``version``
and ``status = 'pending'``, so of two concurrent reviewers exactly one
commits. The activity log is rewritten in the same statement as the prior
entries plus one new entry.

Engines only flush. The caller owns the transaction and commits the
transition together with its side effect.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.errors import ConflictError, StateError, ValidationError
from clubcore.core.security import Actor
from clubcore.models import WorkflowStatus
from clubcore.services.access_control import (
    Action,
    Resource,
    deny_missing,
    ensure_authorized,
    load_parent_links,
)
from clubcore.services.activity_log import ActivityLogEntry, append_entry
from clubcore.utils.timezone import Clock, SystemClock

logger = logging.getLogger(__name__)

SUBMITTED = "submitted"
STATUS_CHANGED = "status_changed"


class WorkflowEngine:
    """Base engine, parameterized by ``model`` and ``entity_type``."""

    model: Any = None
    entity_type: str = "workflow_entity"

    def __init__(self, db: AsyncSession, clock: Clock = SystemClock()):
        self.db = db
        self.clock = clock

    # Hooks for concrete engines

    async def resource_for(self, record) -> Resource:
        raise NotImplementedError

    def review_values(self, actor: Actor, at: datetime, notes: Optional[str]) -> Dict[str, Any]:
        raise NotImplementedError

    async def on_approved(self, record, actor: Actor) -> None:
        """Type-specific side effect of approval, written in the same transaction."""

    # Reads

    async def load(self, record_id: str):
        result = await self.db.execute(
            select(self.model)
            .where(self.model.id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def load_authorized(self, actor: Actor, record_id: str, action: Action):
        record = await self.load(record_id)
        if record is None:
            raise deny_missing(actor)
        resource = await self.resource_for(record)
        parent_links = await load_parent_links(self.db, actor)
        ensure_authorized(actor, action, resource, parent_links)
        return record

    async def get(self, actor: Actor, record_id: str):
        return await self.load_authorized(actor, record_id, Action.VIEW)

    # Transitions

    def submitted_entry(self, actor: Actor, at: datetime) -> ActivityLogEntry:
        return ActivityLogEntry(
            action=SUBMITTED, by_user=actor.id, by_role=actor.role.value, timestamp=at
        )

    async def approve(self, actor: Actor, record_id: str, notes: Optional[str] = None):
        record = await self.load_authorized(actor, record_id, Action.REVIEW)
        await self._transition(record, actor, WorkflowStatus.APPROVED, notes)
        await self.on_approved(record, actor)
        logger.info(f"Approved {self.entity_type} {record.id} by {actor.role.value} {actor.id}")
        return record

    async def reject(self, actor: Actor, record_id: str, reason: Optional[str]):
        if reason is None or not reason.strip():
            raise ValidationError("A rejection reason is required", code="reason_required")
        record = await self.load_authorized(actor, record_id, Action.REVIEW)
        await self._transition(record, actor, WorkflowStatus.REJECTED, reason.strip())
        logger.info(f"Rejected {self.entity_type} {record.id} by {actor.role.value} {actor.id}")
        return record

    async def _transition(
        self,
        record,
        actor: Actor,
        to_status: WorkflowStatus,
        notes: Optional[str],
    ) -> None:
        from_status = WorkflowStatus(record.status)
        if from_status.is_terminal:
            raise StateError(f"This {self.entity_type.replace('_', ' ')} has already been {from_status.value}")

        now = self.clock()
        entry = ActivityLogEntry(
            action=STATUS_CHANGED,
            by_user=actor.id,
            by_role=actor.role.value,
            timestamp=now,
            from_status=from_status.value,
            to_status=to_status.value,
            notes=notes,
        )
        result = await self.db.execute(
            update(self.model)
            .where(
                self.model.id == record.id,
                self.model.version == record.version,
                self.model.status == WorkflowStatus.PENDING.value,
            )
            .values(
                status=to_status.value,
                activity_log=append_entry(record.activity_log, entry),
                version=record.version + 1,
                updated_at=now,
                **self.review_values(actor, now, notes),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            # Lost the race: report what the winner did
            current = await self.load(record.id)
            if current is not None and WorkflowStatus(current.status).is_terminal:
                raise StateError(
                    f"This {self.entity_type.replace('_', ' ')} has already been {current.status}"
                )
            raise ConflictError(
                "The record was modified concurrently, please retry",
                code="concurrent_update",
            )

        await self.db.refresh(record)
