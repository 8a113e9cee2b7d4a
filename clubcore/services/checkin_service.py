"""Check-in engine for training session attendance."""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.errors import (
    ALREADY_CHECKED_IN,
    TOO_EARLY,
    TOO_LATE,
    ConflictError,
    TimeWindowError,
    ValidationError,
)
from clubcore.core.security import Actor, Role
from clubcore.models import AttendanceRecord, AttendanceStatus, CheckInMethod, TrainingSession
from clubcore.services.access_control import (
    Action,
    Resource,
    deny_missing,
    ensure_authorized,
    ensure_same_club,
    load_parent_links,
)
from clubcore.utils.timezone import Clock, SystemClock, as_utc

logger = logging.getLogger(__name__)

# Check-in opens 30 minutes before the start and closes 15 minutes after
CHECK_IN_OPENS_BEFORE = timedelta(minutes=30)
CHECK_IN_CLOSES_AFTER = timedelta(minutes=15)


def evaluate_check_in_window(session_start: datetime, at: datetime) -> AttendanceStatus:
    """Status for a check-in at ``at``; both window bounds are inclusive."""
    session_start = as_utc(session_start)
    at = as_utc(at)

    if at < session_start - CHECK_IN_OPENS_BEFORE:
        raise TimeWindowError(
            "Check-in opens 30 minutes before the session starts", code=TOO_EARLY
        )
    if at > session_start + CHECK_IN_CLOSES_AFTER:
        raise TimeWindowError(
            "Check-in closed 15 minutes after the session started", code=TOO_LATE
        )
    if at <= session_start:
        return AttendanceStatus.PRESENT
    return AttendanceStatus.LATE


class CheckInService:
    """Service for athlete self check-in."""

    def __init__(self, db: AsyncSession, clock: Clock = SystemClock()):
        self.db = db
        self.clock = clock

    async def check_in(
        self,
        actor: Actor,
        session_id: str,
        at: Optional[datetime] = None,
        athlete_id: Optional[str] = None,
    ) -> AttendanceRecord:
        """Authorize ``actor`` and record the check-in."""
        athlete_id = athlete_id or actor.id

        session = await self.db.get(TrainingSession, session_id)
        if session is None:
            raise deny_missing(actor)
        ensure_authorized(
            actor, Action.CHECK_IN, Resource(club_id=session.club_id, athlete_id=athlete_id)
        )
        ensure_same_club(actor, session.club_id)

        return await self.record_check_in(athlete_id, session, at or self.clock())

    async def record_check_in(
        self, athlete_id: str, session: TrainingSession, at: datetime
    ) -> AttendanceRecord:
        """Window check plus atomic insert. Exactly one of concurrent callers wins."""
        if session.is_cancelled:
            raise ValidationError("This training session has been cancelled", code="session_cancelled")

        status = evaluate_check_in_window(session.start_at, at)

        attendance = AttendanceRecord(
            session_id=session.id,
            athlete_id=athlete_id,
            status=status,
            check_in_time=as_utc(at),
            check_in_method=CheckInMethod.SELF_CHECKIN,
        )
        self.db.add(attendance)
        try:
            # The (session_id, athlete_id) unique constraint arbitrates races
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("Already checked in to this session", code=ALREADY_CHECKED_IN) from e

        logger.info(
            f"Athlete {athlete_id} checked in to session {session.id} as {status.value}"
        )
        return attendance

    async def list_attendance(self, actor: Actor, athlete_id: str) -> List[AttendanceRecord]:
        """Attendance history of one athlete, newest first.

        Coaches only see sessions of their own club.
        """
        parent_links = await load_parent_links(self.db, actor)
        club_id = actor.club_id if actor.role == Role.COACH else None
        ensure_authorized(
            actor, Action.VIEW, Resource(club_id=club_id, athlete_id=athlete_id), parent_links
        )

        query = select(AttendanceRecord).where(AttendanceRecord.athlete_id == athlete_id)
        if club_id is not None:
            query = query.join(TrainingSession).where(TrainingSession.club_id == club_id)
        result = await self.db.execute(query.order_by(AttendanceRecord.created_at.desc()))
        return list(result.scalars().all())
