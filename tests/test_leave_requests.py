"""
Leave request workflow tests
"""
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from clubcore.core.errors import AuthorizationError, ConflictError, StateError, ValidationError
from clubcore.models import AttendanceRecord, AttendanceStatus, CheckInMethod, WorkflowStatus
from clubcore.services.checkin_service import CheckInService
from clubcore.services.leave_request_service import LeaveRequestService

from conftest import NOW, link_parent, make_session

REASON = "Family trip out of town"


async def request_leave(db, clock, athlete, session, reason=REASON):
    leave_request = await LeaveRequestService(db, clock).submit(athlete, session.id, reason)
    await db.commit()
    return leave_request


async def excused_count(db):
    return await db.scalar(
        select(func.count(AttendanceRecord.id)).where(
            AttendanceRecord.status == AttendanceStatus.EXCUSED
        )
    )


class TestSubmit:
    """Requesting leave"""

    @pytest.mark.asyncio
    async def test_creates_pending_request(self, db, clock, athlete, upcoming_session):
        leave_request = await request_leave(db, clock, athlete, upcoming_session)

        assert leave_request.status == WorkflowStatus.PENDING.value
        assert leave_request.athlete_id == athlete.id
        assert leave_request.activity_log[0]["action"] == "submitted"

    @pytest.mark.asyncio
    async def test_second_request_for_same_session_conflicts(self, db, clock, athlete, upcoming_session):
        await request_leave(db, clock, athlete, upcoming_session)

        with pytest.raises(ConflictError) as exc_info:
            await request_leave(db, clock, athlete, upcoming_session)
        assert exc_info.value.code == "duplicate_leave_request"

    @pytest.mark.asyncio
    async def test_short_reason_rejected(self, db, clock, athlete, upcoming_session):
        with pytest.raises(ValidationError):
            await request_leave(db, clock, athlete, upcoming_session, reason="  sick   ")

    @pytest.mark.asyncio
    async def test_lead_time_enforced(self, db, clock, club, athlete):
        session = await make_session(db, club, NOW + timedelta(minutes=119))
        with pytest.raises(ValidationError) as exc_info:
            await request_leave(db, clock, athlete, session)
        assert exc_info.value.code == "leave_too_late"

    @pytest.mark.asyncio
    async def test_exact_lead_time_allowed(self, db, clock, club, athlete):
        session = await make_session(db, club, NOW + timedelta(minutes=120))
        leave_request = await request_leave(db, clock, athlete, session)
        assert leave_request.status == WorkflowStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_lead_time_configurable(self, db, clock, club, athlete):
        session = await make_session(db, club, NOW + timedelta(minutes=30))
        service = LeaveRequestService(db, clock, min_lead_time=timedelta(minutes=15))
        leave_request = await service.submit(athlete, session.id, REASON)
        assert leave_request.id

    @pytest.mark.asyncio
    async def test_cancelled_session_rejected(self, db, clock, club, athlete):
        session = await make_session(db, club, NOW + timedelta(days=2), cancelled=True)
        with pytest.raises(ValidationError) as exc_info:
            await request_leave(db, clock, athlete, session)
        assert exc_info.value.code == "session_cancelled"

    @pytest.mark.asyncio
    async def test_already_checked_in(self, db, clock, club, athlete):
        session = await make_session(db, club, NOW + timedelta(days=1))
        clock.set(session.start_at)
        await CheckInService(db, clock).check_in(athlete, session.id)
        await db.commit()
        clock.set(NOW)

        with pytest.raises(ConflictError) as exc_info:
            await request_leave(db, clock, athlete, session)
        assert exc_info.value.code == "already_checked_in"

    @pytest.mark.asyncio
    async def test_parent_cannot_request(self, db, clock, parent, athlete, upcoming_session):
        await link_parent(db, parent, athlete)
        with pytest.raises(AuthorizationError):
            await LeaveRequestService(db, clock).submit(
                parent, upcoming_session.id, REASON, athlete_id=athlete.id
            )


class TestReview:
    """Approving and rejecting leave"""

    @pytest.mark.asyncio
    async def test_approve_creates_one_excused_record(self, db, clock, athlete, coach, upcoming_session):
        leave_request = await request_leave(db, clock, athlete, upcoming_session)

        approved = await LeaveRequestService(db, clock).approve(coach, leave_request.id, "ok")
        await db.commit()

        assert approved.status == WorkflowStatus.APPROVED.value
        assert approved.reviewed_by == coach.id
        assert approved.reviewed_at is not None
        assert approved.review_notes == "ok"
        records = (await db.execute(select(AttendanceRecord))).scalars().all()
        assert len(records) == 1
        assert records[0].status == AttendanceStatus.EXCUSED
        assert records[0].check_in_method == CheckInMethod.LEAVE_APPROVAL
        assert records[0].leave_request_id == leave_request.id

    @pytest.mark.asyncio
    async def test_reject_creates_no_attendance(self, db, clock, athlete, coach, upcoming_session):
        leave_request = await request_leave(db, clock, athlete, upcoming_session)

        rejected = await LeaveRequestService(db, clock).reject(coach, leave_request.id, "Tournament prep")
        await db.commit()

        assert rejected.status == WorkflowStatus.REJECTED.value
        assert rejected.review_notes == "Tournament prep"
        assert await excused_count(db) == 0

    @pytest.mark.asyncio
    async def test_reprocessing_fails_without_side_effect(self, db, clock, athlete, coach, upcoming_session):
        leave_request = await request_leave(db, clock, athlete, upcoming_session)
        service = LeaveRequestService(db, clock)
        await service.approve(coach, leave_request.id)
        await db.commit()

        with pytest.raises(StateError):
            await service.approve(coach, leave_request.id)
        with pytest.raises(StateError):
            await service.reject(coach, leave_request.id, "too late now")
        assert await excused_count(db) == 1

    @pytest.mark.asyncio
    async def test_approval_conflicts_with_existing_attendance(
        self, session_factory, clock, club, athlete, coach
    ):
        async with session_factory() as db:
            session = await make_session(db, club, NOW + timedelta(days=1))
            leave_request = await request_leave(db, clock, athlete, session)
            # Attendance recorded by another path after the request was filed
            db.add(
                AttendanceRecord(
                    session_id=session.id,
                    athlete_id=athlete.id,
                    status=AttendanceStatus.PRESENT,
                )
            )
            await db.commit()

        async with session_factory() as db:
            with pytest.raises(ConflictError) as exc_info:
                await LeaveRequestService(db, clock).approve(coach, leave_request.id)
            assert exc_info.value.code == "attendance_exists"

        async with session_factory() as db:
            current = await LeaveRequestService(db, clock).load(leave_request.id)
            assert current.status == WorkflowStatus.PENDING.value
            assert current.version == 1

    @pytest.mark.asyncio
    async def test_other_club_coach_denied(self, db, clock, athlete, other_coach, upcoming_session):
        leave_request = await request_leave(db, clock, athlete, upcoming_session)
        with pytest.raises(AuthorizationError):
            await LeaveRequestService(db, clock).approve(other_coach, leave_request.id)

    @pytest.mark.asyncio
    async def test_linked_parent_can_view(self, db, clock, athlete, parent, upcoming_session):
        leave_request = await request_leave(db, clock, athlete, upcoming_session)
        await link_parent(db, parent, athlete)

        viewed = await LeaveRequestService(db, clock).get(parent, leave_request.id)

        assert viewed.id == leave_request.id
