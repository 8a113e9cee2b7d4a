"""API dependencies for authentication, database access and commands."""

from typing import Annotated, Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from clubcore.core.correlation import RequestContext, create_context
from clubcore.core.database import get_db
from clubcore.core.errors import AuthenticationError, AuthorizationError
from clubcore.core.security import Actor, verify_token
from clubcore.services.command_service import ClubCommandService
from clubcore.services.idempotency import IDEMPOTENCY_HEADER
from clubcore.services.notification_service import NotificationDispatcher
from clubcore.utils.timezone import Clock, SystemClock

# Security scheme; missing credentials are reported through our own error body
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)]
) -> Actor:
    """Get the authenticated actor from the bearer token."""
    if credentials is None:
        raise AuthenticationError()
    actor = verify_token(credentials.credentials)
    if actor is None:
        raise AuthenticationError()
    return actor


async def get_admin_actor(
    actor: Annotated[Actor, Depends(get_current_actor)]
) -> Actor:
    if not actor.is_admin:
        raise AuthorizationError()
    return actor


def get_request_context(request: Request) -> RequestContext:
    """Root context created by the correlation middleware."""
    context = getattr(request.state, "context", None)
    return context or create_context()


def get_clock(request: Request) -> Clock:
    return getattr(request.app.state, "clock", None) or SystemClock()


def get_dispatcher(request: Request) -> NotificationDispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        dispatcher = NotificationDispatcher()
        request.app.state.dispatcher = dispatcher
    return dispatcher


# Dependency aliases for easier use
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AdminActor = Annotated[Actor, Depends(get_admin_actor)]
Context = Annotated[RequestContext, Depends(get_request_context)]
CurrentClock = Annotated[Clock, Depends(get_clock)]
IdempotencyKey = Annotated[Optional[str], Header(alias=IDEMPOTENCY_HEADER)]


async def get_command_service(
    db: DbSession,
    context: Context,
    clock: CurrentClock,
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
) -> ClubCommandService:
    return ClubCommandService(db, context, clock=clock, dispatcher=dispatcher)


Commands = Annotated[ClubCommandService, Depends(get_command_service)]
