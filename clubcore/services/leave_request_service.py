"""Leave request workflow."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.errors import ConflictError, ValidationError
from clubcore.core.security import Actor
from clubcore.core.settings import settings
from clubcore.models import (
    AttendanceRecord,
    AttendanceStatus,
    CheckInMethod,
    LeaveRequest,
    TrainingSession,
    WorkflowStatus,
)
from clubcore.services.access_control import (
    Action,
    Resource,
    deny_missing,
    ensure_authorized,
    ensure_same_club,
)
from clubcore.services.activity_log import append_entry
from clubcore.services.validation import raise_if_invalid, validate_min_length
from clubcore.services.workflow import WorkflowEngine
from clubcore.utils.timezone import Clock, SystemClock, as_utc

logger = logging.getLogger(__name__)


class LeaveRequestService(WorkflowEngine):
    """Athletes ask to be excused from a session; coaches approve or reject."""

    model = LeaveRequest
    entity_type = "leave_request"

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = SystemClock(),
        min_lead_time: Optional[timedelta] = None,
        reason_min_length: Optional[int] = None,
    ):
        super().__init__(db, clock)
        if min_lead_time is None:
            min_lead_time = timedelta(minutes=settings.leave_request_min_lead_minutes)
        self.min_lead_time = min_lead_time
        self.reason_min_length = (
            settings.leave_reason_min_length if reason_min_length is None else reason_min_length
        )

    async def _session(self, session_id: str) -> Optional[TrainingSession]:
        return await self.db.get(TrainingSession, session_id)

    async def resource_for(self, record: LeaveRequest) -> Resource:
        session = await self._session(record.session_id)
        return Resource(
            club_id=session.club_id if session else None,
            athlete_id=record.athlete_id,
        )

    def review_values(self, actor: Actor, at: datetime, notes: Optional[str]) -> Dict[str, Any]:
        return {"reviewed_by": actor.id, "reviewed_at": at, "review_notes": notes}

    async def submit(
        self,
        actor: Actor,
        session_id: str,
        reason: str,
        athlete_id: Optional[str] = None,
    ) -> LeaveRequest:
        athlete_id = athlete_id or actor.id

        session = await self._session(session_id)
        if session is None:
            raise deny_missing(actor)
        ensure_authorized(
            actor, Action.REQUEST_LEAVE, Resource(club_id=session.club_id, athlete_id=athlete_id)
        )
        ensure_same_club(actor, session.club_id)

        raise_if_invalid([validate_min_length(reason, self.reason_min_length, "reason")])

        if session.is_cancelled:
            raise ValidationError("This training session has been cancelled", code="session_cancelled")

        now = self.clock()
        if as_utc(session.start_at) - now < self.min_lead_time:
            minutes = int(self.min_lead_time.total_seconds() // 60)
            raise ValidationError(
                f"Leave must be requested at least {minutes} minutes before the session starts",
                code="leave_too_late",
            )

        attendance = await self.db.execute(
            select(AttendanceRecord.id).where(
                AttendanceRecord.session_id == session_id,
                AttendanceRecord.athlete_id == athlete_id,
            )
        )
        if attendance.scalar_one_or_none() is not None:
            raise ConflictError(
                "Already checked in to this session, leave cannot be requested",
                code="already_checked_in",
            )

        leave_request = LeaveRequest(
            session_id=session_id,
            athlete_id=athlete_id,
            reason=reason.strip(),
            status=WorkflowStatus.PENDING.value,
            activity_log=append_entry([], self.submitted_entry(actor, now)),
            version=1,
            requested_at=now,
            updated_at=now,
        )
        self.db.add(leave_request)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info(f"Duplicate leave request for athlete {athlete_id} in session {session_id}")
            raise ConflictError(
                "A leave request for this session already exists",
                code="duplicate_leave_request",
            ) from e

        logger.info(f"Leave request {leave_request.id} created for session {session_id}")
        return leave_request

    async def on_approved(self, record: LeaveRequest, actor: Actor) -> None:
        """Create exactly one excused attendance record for the session."""
        attendance = AttendanceRecord(
            session_id=record.session_id,
            athlete_id=record.athlete_id,
            status=AttendanceStatus.EXCUSED,
            check_in_method=CheckInMethod.LEAVE_APPROVAL,
            leave_request_id=record.id,
        )
        self.db.add(attendance)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(
                "The athlete already has attendance recorded for this session",
                code="attendance_exists",
            ) from e
        logger.info(f"Excused attendance {attendance.id} created for leave request {record.id}")
