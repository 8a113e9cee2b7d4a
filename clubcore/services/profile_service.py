"""Athlete profile provisioning for approved applications."""

import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.errors import ConflictError
from clubcore.models import AthleteProfile, MembershipApplication

logger = logging.getLogger(__name__)


class ProfileProvisioner(Protocol):
    async def provision(self, db: AsyncSession, application: MembershipApplication) -> str:
        """Return the id of the athlete profile for the application's (user, club)."""
        ...


class AthleteProfileProvisioner:
    """Creates the profile in the caller's transaction, or reuses an existing one."""

    async def find(
        self, db: AsyncSession, application: MembershipApplication
    ) -> Optional[AthleteProfile]:
        result = await db.execute(
            select(AthleteProfile).where(
                AthleteProfile.user_id == application.user_id,
                AthleteProfile.club_id == application.club_id,
            )
        )
        return result.scalar_one_or_none()

    async def provision(self, db: AsyncSession, application: MembershipApplication) -> str:
        profile = await self.find(db, application)
        if profile is not None:
            logger.info(f"Reusing athlete profile {profile.id} for user {application.user_id}")
            return profile.id

        personal_info = application.personal_info or {}
        profile = AthleteProfile(
            user_id=application.user_id,
            club_id=application.club_id,
            full_name=personal_info.get("full_name", ""),
            phone_number=personal_info.get("phone_number"),
        )
        db.add(profile)
        try:
            await db.flush()
        except IntegrityError as e:
            # Created concurrently after the lookup; a retry will reuse it
            await db.rollback()
            raise ConflictError(
                "An athlete profile for this member was created concurrently",
                code="profile_exists",
            ) from e
        logger.info(f"Created athlete profile {profile.id} for user {application.user_id}")
        return profile.id
