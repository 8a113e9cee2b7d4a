"""Membership application workflow."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.errors import ConflictError
from clubcore.core.security import Actor
from clubcore.models import Club, MembershipApplication, WorkflowStatus
from clubcore.services.access_control import Action, Resource, deny_missing, ensure_authorized
from clubcore.services.activity_log import append_entry
from clubcore.services.profile_service import AthleteProfileProvisioner, ProfileProvisioner
from clubcore.services.validation import (
    raise_if_invalid,
    validate_documents,
    validate_personal_info,
)
from clubcore.services.workflow import WorkflowEngine
from clubcore.utils.timezone import Clock, SystemClock

logger = logging.getLogger(__name__)


class MembershipApplicationService(WorkflowEngine):
    """Submit, review and read membership applications."""

    model = MembershipApplication
    entity_type = "membership_application"

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = SystemClock(),
        profiles: Optional[ProfileProvisioner] = None,
    ):
        super().__init__(db, clock)
        self.profiles = profiles or AthleteProfileProvisioner()

    async def resource_for(self, record: MembershipApplication) -> Resource:
        return Resource(club_id=record.club_id, athlete_id=record.user_id)

    def review_values(self, actor: Actor, at: datetime, notes: Optional[str]) -> Dict[str, Any]:
        return {
            "review_info": {
                "reviewed_by": actor.id,
                "reviewed_at": at.isoformat(),
                "reviewer_role": actor.role.value,
                "notes": notes,
            }
        }

    async def submit(
        self,
        actor: Actor,
        club_id: str,
        personal_info: Dict[str, Any],
        documents: Optional[List[Dict[str, Any]]] = None,
        user_id: Optional[str] = None,
    ) -> MembershipApplication:
        """Create a pending application for ``user_id`` (default: the actor)."""
        user_id = user_id or actor.id
        ensure_authorized(actor, Action.SUBMIT, Resource(club_id=club_id, athlete_id=user_id))

        documents = documents if documents is not None else []
        raise_if_invalid(validate_personal_info(personal_info))
        raise_if_invalid([validate_documents(documents)])

        club = await self.db.get(Club, club_id)
        if club is None:
            raise deny_missing(actor)

        now = self.clock()
        application = MembershipApplication(
            user_id=user_id,
            club_id=club_id,
            personal_info=personal_info,
            documents=documents,
            status=WorkflowStatus.PENDING.value,
            activity_log=append_entry([], self.submitted_entry(actor, now)),
            version=1,
            updated_at=now,
        )
        self.db.add(application)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info(f"Duplicate application for user {user_id} in club {club_id}: {e.orig}")
            raise ConflictError(
                "An application for this club already exists",
                code="duplicate_application",
            ) from e

        logger.info(f"Submitted membership application {application.id} for club {club_id}")
        return application

    async def on_approved(self, record: MembershipApplication, actor: Actor) -> None:
        profile_id = await self.profiles.provision(self.db, record)
        await self.db.execute(
            update(MembershipApplication)
            .where(MembershipApplication.id == record.id)
            .values(profile_id=profile_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(record)

    async def list_for_club(
        self,
        actor: Actor,
        club_id: str,
        status: Optional[WorkflowStatus] = None,
    ) -> list[MembershipApplication]:
        """Applications of a club, newest first. Coaches of the club and admins."""
        ensure_authorized(actor, Action.VIEW, Resource(club_id=club_id))
        query = select(MembershipApplication).where(MembershipApplication.club_id == club_id)
        if status is not None:
            query = query.where(MembershipApplication.status == status.value)
        result = await self.db.execute(query.order_by(MembershipApplication.created_at.desc()))
        return list(result.scalars().all())
