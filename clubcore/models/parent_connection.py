"""Parent connection model."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from clubcore.core.database import Base
from clubcore.models.base import new_id


class ParentRelationship(str, Enum):
    FATHER = "father"
    MOTHER = "mother"
    GUARDIAN = "guardian"


class ParentConnection(Base):
    """Link between a parent account and an athlete.

    Grants access only while both verified and active.
    """

    __tablename__ = "parent_connections"
    __table_args__ = (
        UniqueConstraint("parent_user_id", "athlete_id", name="parent_connections_parent_athlete_unique"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    parent_user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    athlete_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    relationship: Mapped[ParentRelationship] = mapped_column(
        SQLEnum(ParentRelationship), nullable=False, default=ParentRelationship.GUARDIAN
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<ParentConnection(parent={self.parent_user_id}, athlete={self.athlete_id}, "
            f"verified={self.is_verified}, active={self.is_active})>"
        )
