"""Check-in and attendance API endpoints."""

from fastapi import APIRouter, status

from clubcore.api.dependencies import Commands, Context, CurrentActor, CurrentClock, DbSession, IdempotencyKey
from clubcore.api.responses import command_response, read_response
from clubcore.schemas import AttendanceOut, to_json
from clubcore.services.checkin_service import CheckInService

router = APIRouter(tags=["attendance"])


@router.post("/sessions/{session_id}/check-in", status_code=status.HTTP_201_CREATED)
async def check_in(
    session_id: str,
    actor: CurrentActor,
    commands: Commands,
    idempotency_key: IdempotencyKey = None,
):
    """Self check-in, open from 30 minutes before to 15 minutes after the start."""
    result = await commands.check_in(actor, idempotency_key, session_id)
    return command_response(result, status.HTTP_201_CREATED)


@router.get("/athletes/{athlete_id}/attendance")
async def list_attendance(
    athlete_id: str,
    actor: CurrentActor,
    db: DbSession,
    context: Context,
    clock: CurrentClock,
):
    records = await CheckInService(db, clock).list_attendance(actor, athlete_id)
    return read_response([to_json(AttendanceOut, r) for r in records], context)
