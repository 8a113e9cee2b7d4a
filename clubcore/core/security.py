"""Actor identity and bearer token handling.

Authentication itself is owned by an external identity provider; this
module only verifies the signed token it issues and turns the claims into
an immutable ``Actor``.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, model_validator

from clubcore.core.settings import settings

# JWT configuration
ALGORITHM = "HS256"


class Role(str, Enum):
    """Actor roles."""

    ADMIN = "admin"
    COACH = "coach"
    ATHLETE = "athlete"
    PARENT = "parent"


class Actor(BaseModel):
    """Authenticated identity. Coaches and parents always carry a ``club_id``."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    club_id: Optional[str] = None

    @model_validator(mode="after")
    def _club_required_for_non_admin(self) -> "Actor":
        if self.role not in (Role.ADMIN, Role.ATHLETE) and self.club_id is None:
            raise ValueError(f"{self.role.value} actors must belong to a club")
        return self

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def create_access_token(
    actor: Actor,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
) -> str:
    """Issue a signed token for an actor (used by tooling and tests)."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {
        "sub": actor.id,
        "role": actor.role.value,
        "club_id": actor.club_id,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, secret_key or settings.secret_key, algorithm=ALGORITHM)


def verify_token(token: str, secret_key: Optional[str] = None) -> Optional[Actor]:
    """Verify access token and return the actor it names."""
    try:
        payload = jwt.decode(
            token, secret_key or settings.secret_key, algorithms=[ALGORITHM]
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or not role:
        return None
    try:
        return Actor(id=subject, role=Role(role), club_id=payload.get("club_id"))
    except ValueError:
        return None
