"""Leave request API endpoints."""

from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel

from clubcore.api.applications import RejectionReason, ReviewNotes
from clubcore.api.dependencies import Commands, Context, CurrentActor, CurrentClock, DbSession, IdempotencyKey
from clubcore.api.responses import command_response, read_response
from clubcore.schemas import LeaveRequestOut, to_json
from clubcore.services.leave_request_service import LeaveRequestService

router = APIRouter(tags=["leave-requests"])


class LeaveRequestCreate(BaseModel):
    reason: str


@router.post("/sessions/{session_id}/leave-requests", status_code=status.HTTP_201_CREATED)
async def create_leave_request(
    session_id: str,
    payload: LeaveRequestCreate,
    actor: CurrentActor,
    commands: Commands,
    idempotency_key: IdempotencyKey = None,
):
    """Ask to be excused from a training session."""
    result = await commands.request_leave(actor, idempotency_key, session_id, payload.reason)
    return command_response(result, status.HTTP_201_CREATED)


@router.get("/leave-requests/{leave_request_id}")
async def get_leave_request(
    leave_request_id: str,
    actor: CurrentActor,
    db: DbSession,
    context: Context,
    clock: CurrentClock,
):
    leave_request = await LeaveRequestService(db, clock).get(actor, leave_request_id)
    return read_response(to_json(LeaveRequestOut, leave_request), context)


@router.post("/leave-requests/{leave_request_id}/approve")
async def approve_leave_request(
    leave_request_id: str,
    actor: CurrentActor,
    commands: Commands,
    idempotency_key: IdempotencyKey = None,
    payload: Optional[ReviewNotes] = None,
):
    notes = payload.notes if payload else None
    result = await commands.approve_leave(actor, idempotency_key, leave_request_id, notes)
    return command_response(result)


@router.post("/leave-requests/{leave_request_id}/reject")
async def reject_leave_request(
    leave_request_id: str,
    payload: RejectionReason,
    actor: CurrentActor,
    commands: Commands,
    idempotency_key: IdempotencyKey = None,
):
    result = await commands.reject_leave(actor, idempotency_key, leave_request_id, payload.reason)
    return command_response(result)
