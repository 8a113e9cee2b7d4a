"""Training session model."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubcore.core.database import Base
from clubcore.models.base import new_id


class TrainingSessionStatus(str, Enum):
    """Training session status enum."""

    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


class TrainingSession(Base):
    """A coach-owned training session. Read-only to the workflow core."""

    __tablename__ = "training_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    club_id: Mapped[str] = mapped_column(ForeignKey("clubs.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="Training")
    # Stored in UTC
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[TrainingSessionStatus] = mapped_column(
        SQLEnum(TrainingSessionStatus),
        default=TrainingSessionStatus.SCHEDULED,
        nullable=False,
    )
    coach_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    club: Mapped["Club"] = relationship("Club", back_populates="training_sessions")
    attendance_records: Mapped[list["AttendanceRecord"]] = relationship(
        "AttendanceRecord", back_populates="session"
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == TrainingSessionStatus.CANCELLED

    def __repr__(self) -> str:
        return (
            f"<TrainingSession(id={self.id}, club_id={self.club_id}, "
            f"start_at={self.start_at}, status={self.status})>"
        )
