"""Access control evaluator.

A pure decision function over the facts it is given: who the actor is,
what they want to do, and which club/athlete the resource belongs to.
Storage is never touched here except by ``load_parent_links``, which the
caller uses to gather the facts for parent actors.

Rules (first match wins):
  1. admin   -> allow everything
  2. coach   -> allow only inside their own club
  3. athlete -> allow only when they are the subject of the resource
  4. parent  -> allow only for athletes linked by a verified, active connection
"""

import logging
from enum import Enum
from typing import AbstractSet, Optional, Union

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.errors import ACCESS_DENIED_MESSAGE, AuthorizationError, NotFoundError
from clubcore.core.security import Actor, Role
from clubcore.models import ParentConnection

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Actions the evaluator knows about."""

    VIEW = "view"
    SUBMIT = "submit"
    REVIEW = "review"
    CHECK_IN = "check_in"
    REQUEST_LEAVE = "request_leave"


# Which roles may attempt each action at all (admins always may)
ROLE_CAPABILITIES = {
    Action.VIEW: {Role.COACH, Role.ATHLETE, Role.PARENT},
    Action.SUBMIT: {Role.ATHLETE},
    Action.REVIEW: {Role.COACH},
    Action.CHECK_IN: {Role.ATHLETE},
    Action.REQUEST_LEAVE: {Role.ATHLETE},
}


class Resource(BaseModel):
    """Ownership facts about the target of an action."""

    model_config = ConfigDict(frozen=True)

    club_id: Optional[str] = None
    athlete_id: Optional[str] = None


class Allow(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool = True


class Deny(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool = False
    # Always generic: must not reveal whether the resource exists
    reason: str = ACCESS_DENIED_MESSAGE


Decision = Union[Allow, Deny]

ALLOW = Allow()
DENY = Deny()


def authorize(
    actor: Actor,
    action: Action,
    resource: Resource,
    parent_links: AbstractSet[str] = frozenset(),
) -> Decision:
    """Decide whether ``actor`` may perform ``action`` on ``resource``.

    ``parent_links`` is the set of athlete ids the actor is a verified and
    active parent of; it is ignored for other roles.
    """
    if actor.role == Role.ADMIN:
        return ALLOW

    if actor.role not in ROLE_CAPABILITIES.get(action, set()):
        return DENY

    if actor.role == Role.COACH:
        if actor.club_id is not None and resource.club_id == actor.club_id:
            return ALLOW
        return DENY

    if actor.role == Role.ATHLETE:
        if resource.athlete_id is not None and resource.athlete_id == actor.id:
            return ALLOW
        return DENY

    if actor.role == Role.PARENT:
        if resource.athlete_id is not None and resource.athlete_id in parent_links:
            return ALLOW
        return DENY

    return DENY


def ensure_authorized(
    actor: Actor,
    action: Action,
    resource: Resource,
    parent_links: AbstractSet[str] = frozenset(),
) -> None:
    """Raise ``AuthorizationError`` unless the evaluator allows the action."""
    decision = authorize(actor, action, resource, parent_links)
    if not decision.allowed:
        logger.info(
            f"Denied {action.value} for {actor.role.value} {actor.id} "
            f"(club={resource.club_id}, athlete={resource.athlete_id})"
        )
        raise AuthorizationError(decision.reason)


def deny_missing(actor: Actor) -> Exception:
    """Error to raise when a looked-up resource does not exist.

    Only admins learn that something is missing; everyone else gets the
    same error as a scope violation.
    """
    if actor.is_admin:
        return NotFoundError()
    return AuthorizationError()


def ensure_same_club(actor: Actor, club_id: str) -> None:
    """Athletes may only act on sessions of their own club."""
    if actor.role == Role.ATHLETE and actor.club_id != club_id:
        raise AuthorizationError()


async def load_parent_links(db: AsyncSession, actor: Actor) -> frozenset:
    """Athlete ids linked to a parent actor by verified, active connections."""
    if actor.role != Role.PARENT:
        return frozenset()
    result = await db.execute(
        select(ParentConnection.athlete_id).where(
            ParentConnection.parent_user_id == actor.id,
            ParentConnection.is_verified.is_(True),
            ParentConnection.is_active.is_(True),
        )
    )
    return frozenset(result.scalars().all())
