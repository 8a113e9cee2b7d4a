"""Mutating commands: trace context, idempotency, engine, audit, notification.

Every command runs as one child step of the inbound request context. The
gatekeeper looks the key up first, so a replay never reaches authorization
or the engines. On a first run the engine's writes, the audit row and the
idempotency record commit together.
Keys are scoped to the operation, the actor and the target record, so a key
reused against a different record runs that command afresh.
"""

import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.correlation import (
    RequestContext,
    create_child_context,
    reset_current_context,
    set_current_context,
)
from clubcore.core.errors import ClubCoreError, InternalError
from clubcore.core.security import Actor
from clubcore.core.settings import Settings, settings as default_settings
from clubcore.schemas import ApplicationOut, AttendanceOut, LeaveRequestOut, to_json
from clubcore.services.audit_service import log_audit
from clubcore.services.checkin_service import CheckInService
from clubcore.services.idempotency import IdempotencyGatekeeper
from clubcore.services.leave_request_service import LeaveRequestService
from clubcore.services.membership_service import MembershipApplicationService
from clubcore.services.notification_service import NotificationDispatcher, NotificationEvent
from clubcore.services.profile_service import ProfileProvisioner
from clubcore.utils.timezone import Clock, SystemClock

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    """Result payload plus the trace ids to continue the chain with."""

    data: Any = None
    correlation_id: str
    causation_id: str
    replayed: bool = False


def _status_change(record) -> Dict[str, Any]:
    last = record.activity_log[-1]
    return {"status": {"from": last.get("from"), "to": last.get("to")}}


class ClubCommandService:
    """Entry point for every state-mutating operation."""

    def __init__(
        self,
        db: AsyncSession,
        context: RequestContext,
        clock: Clock = SystemClock(),
        dispatcher: Optional[NotificationDispatcher] = None,
        profiles: Optional[ProfileProvisioner] = None,
        app_settings: Optional[Settings] = None,
    ):
        app_settings = app_settings or default_settings
        self.db = db
        self.context = context
        self.clock = clock
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.gatekeeper = IdempotencyGatekeeper(db, clock)
        self.applications = MembershipApplicationService(db, clock, profiles)
        self.leave_requests = LeaveRequestService(
            db,
            clock,
            min_lead_time=timedelta(minutes=app_settings.leave_request_min_lead_minutes),
            reason_min_length=app_settings.leave_reason_min_length,
        )
        self.checkins = CheckInService(db, clock)

    async def _run(
        self,
        actor: Actor,
        operation: str,
        idempotency_key: Optional[str],
        work: Callable[[RequestContext], Awaitable[Dict[str, Any]]],
        entity_type: str,
        resource_id: str,
    ) -> CommandResult:
        step = create_child_context(self.context, actor_id=actor.id)
        token = set_current_context(step)
        try:
            try:
                outcome = await self.gatekeeper.execute(
                    idempotency_key,
                    f"{operation}:{actor.id}:{resource_id}",
                    lambda: work(step),
                    actor_id=actor.id,
                )
            except ClubCoreError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected failure in {operation}")
                raise InternalError() from e

            if not outcome.replayed:
                data = outcome.result or {}
                self.dispatcher.dispatch(
                    NotificationEvent(
                        event_type=operation,
                        entity_type=entity_type,
                        entity_id=data.get("id"),
                        actor_id=actor.id,
                        correlation_id=step.correlation_id,
                        causation_id=step.causation_id,
                        details={"status": data.get("status")},
                    )
                )

            return CommandResult(
                data=outcome.result,
                correlation_id=step.correlation_id,
                causation_id=step.causation_id,
                replayed=outcome.replayed,
            )
        finally:
            reset_current_context(token)

    # Membership applications

    async def submit_application(
        self,
        actor: Actor,
        idempotency_key: Optional[str],
        club_id: str,
        personal_info: Dict[str, Any],
        documents: Optional[List[Dict[str, Any]]] = None,
    ) -> CommandResult:
        async def work(step: RequestContext) -> Dict[str, Any]:
            application = await self.applications.submit(actor, club_id, personal_info, documents)
            await log_audit(
                self.db,
                "membership.submit",
                self.applications.entity_type,
                application.id,
                f"Membership application submitted for club {club_id}",
                actor=actor,
                context=step,
                timestamp=self.clock(),
            )
            return to_json(ApplicationOut, application)

        return await self._run(
            actor,
            "membership.submit",
            idempotency_key,
            work,
            self.applications.entity_type,
            resource_id=club_id,
        )

    async def approve_application(
        self,
        actor: Actor,
        idempotency_key: Optional[str],
        application_id: str,
        notes: Optional[str] = None,
    ) -> CommandResult:
        async def work(step: RequestContext) -> Dict[str, Any]:
            application = await self.applications.approve(actor, application_id, notes)
            changes = _status_change(application)
            changes["profile_id"] = application.profile_id
            await log_audit(
                self.db,
                "membership.approve",
                self.applications.entity_type,
                application.id,
                "Membership application approved",
                actor=actor,
                context=step,
                changes=changes,
                timestamp=self.clock(),
            )
            return to_json(ApplicationOut, application)

        return await self._run(
            actor,
            "membership.approve",
            idempotency_key,
            work,
            self.applications.entity_type,
            resource_id=application_id,
        )

    async def reject_application(
        self,
        actor: Actor,
        idempotency_key: Optional[str],
        application_id: str,
        reason: Optional[str],
    ) -> CommandResult:
        async def work(step: RequestContext) -> Dict[str, Any]:
            application = await self.applications.reject(actor, application_id, reason)
            await log_audit(
                self.db,
                "membership.reject",
                self.applications.entity_type,
                application.id,
                "Membership application rejected",
                actor=actor,
                context=step,
                changes=_status_change(application),
                timestamp=self.clock(),
            )
            return to_json(ApplicationOut, application)

        return await self._run(
            actor,
            "membership.reject",
            idempotency_key,
            work,
            self.applications.entity_type,
            resource_id=application_id,
        )

    # Leave requests

    async def request_leave(
        self,
        actor: Actor,
        idempotency_key: Optional[str],
        session_id: str,
        reason: str,
    ) -> CommandResult:
        async def work(step: RequestContext) -> Dict[str, Any]:
            leave_request = await self.leave_requests.submit(actor, session_id, reason)
            await log_audit(
                self.db,
                "leave_request.submit",
                self.leave_requests.entity_type,
                leave_request.id,
                f"Leave requested for session {session_id}",
                actor=actor,
                context=step,
                timestamp=self.clock(),
            )
            return to_json(LeaveRequestOut, leave_request)

        return await self._run(
            actor,
            "leave_request.submit",
            idempotency_key,
            work,
            self.leave_requests.entity_type,
            resource_id=session_id,
        )

    async def approve_leave(
        self,
        actor: Actor,
        idempotency_key: Optional[str],
        leave_request_id: str,
        notes: Optional[str] = None,
    ) -> CommandResult:
        async def work(step: RequestContext) -> Dict[str, Any]:
            leave_request = await self.leave_requests.approve(actor, leave_request_id, notes)
            await log_audit(
                self.db,
                "leave_request.approve",
                self.leave_requests.entity_type,
                leave_request.id,
                "Leave request approved, athlete excused",
                actor=actor,
                context=step,
                changes=_status_change(leave_request),
                timestamp=self.clock(),
            )
            return to_json(LeaveRequestOut, leave_request)

        return await self._run(
            actor,
            "leave_request.approve",
            idempotency_key,
            work,
            self.leave_requests.entity_type,
            resource_id=leave_request_id,
        )

    async def reject_leave(
        self,
        actor: Actor,
        idempotency_key: Optional[str],
        leave_request_id: str,
        reason: Optional[str],
    ) -> CommandResult:
        async def work(step: RequestContext) -> Dict[str, Any]:
            leave_request = await self.leave_requests.reject(actor, leave_request_id, reason)
            await log_audit(
                self.db,
                "leave_request.reject",
                self.leave_requests.entity_type,
                leave_request.id,
                "Leave request rejected",
                actor=actor,
                context=step,
                changes=_status_change(leave_request),
                timestamp=self.clock(),
            )
            return to_json(LeaveRequestOut, leave_request)

        return await self._run(
            actor,
            "leave_request.reject",
            idempotency_key,
            work,
            self.leave_requests.entity_type,
            resource_id=leave_request_id,
        )

    # Attendance

    async def check_in(
        self,
        actor: Actor,
        idempotency_key: Optional[str],
        session_id: str,
    ) -> CommandResult:
        async def work(step: RequestContext) -> Dict[str, Any]:
            attendance = await self.checkins.check_in(actor, session_id)
            await log_audit(
                self.db,
                "attendance.check_in",
                "attendance",
                attendance.id,
                f"Checked in to session {session_id} as {attendance.status.value}",
                actor=actor,
                context=step,
                timestamp=self.clock(),
            )
            return to_json(AttendanceOut, attendance)

        return await self._run(
            actor, "attendance.check_in", idempotency_key, work, "attendance", resource_id=session_id
        )
