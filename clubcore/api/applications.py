"""Membership application API endpoints."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from clubcore.api.dependencies import Commands, Context, CurrentActor, CurrentClock, DbSession, IdempotencyKey
from clubcore.api.responses import command_response, read_response
from clubcore.models import WorkflowStatus
from clubcore.schemas import ApplicationOut, to_json
from clubcore.services.membership_service import MembershipApplicationService

router = APIRouter(tags=["applications"])


class ApplicationCreate(BaseModel):
    """Membership application submission."""

    club_id: str
    personal_info: Dict[str, Any]
    documents: List[Dict[str, Any]] = Field(default_factory=list)


class ReviewNotes(BaseModel):
    notes: Optional[str] = None


class RejectionReason(BaseModel):
    reason: Optional[str] = None


@router.post("/applications", status_code=status.HTTP_201_CREATED)
async def submit_application(
    payload: ApplicationCreate,
    actor: CurrentActor,
    commands: Commands,
    idempotency_key: IdempotencyKey = None,
):
    """Submit a membership application for the current athlete."""
    result = await commands.submit_application(
        actor, idempotency_key, payload.club_id, payload.personal_info, payload.documents
    )
    return command_response(result, status.HTTP_201_CREATED)


@router.get("/applications/{application_id}")
async def get_application(
    application_id: str,
    actor: CurrentActor,
    db: DbSession,
    context: Context,
    clock: CurrentClock,
):
    application = await MembershipApplicationService(db, clock).get(actor, application_id)
    return read_response(to_json(ApplicationOut, application), context)


@router.get("/clubs/{club_id}/applications")
async def list_club_applications(
    club_id: str,
    actor: CurrentActor,
    db: DbSession,
    context: Context,
    clock: CurrentClock,
    status_filter: Optional[WorkflowStatus] = Query(None, alias="status"),
):
    """List a club's applications, optionally by status."""
    applications = await MembershipApplicationService(db, clock).list_for_club(
        actor, club_id, status_filter
    )
    return read_response([to_json(ApplicationOut, a) for a in applications], context)


@router.post("/applications/{application_id}/approve")
async def approve_application(
    application_id: str,
    actor: CurrentActor,
    commands: Commands,
    idempotency_key: IdempotencyKey = None,
    payload: Optional[ReviewNotes] = None,
):
    notes = payload.notes if payload else None
    result = await commands.approve_application(actor, idempotency_key, application_id, notes)
    return command_response(result)


@router.post("/applications/{application_id}/reject")
async def reject_application(
    application_id: str,
    payload: RejectionReason,
    actor: CurrentActor,
    commands: Commands,
    idempotency_key: IdempotencyKey = None,
):
    result = await commands.reject_application(actor, idempotency_key, application_id, payload.reason)
    return command_response(result)
