"""Leave request model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubcore.core.database import Base
from clubcore.models.base import WorkflowMixin, new_id


class LeaveRequest(WorkflowMixin, Base):
    """An athlete's request to be excused from one training session."""

    __tablename__ = "leave_requests"
    __table_args__ = (
        UniqueConstraint("session_id", "athlete_id", name="leave_requests_session_athlete_unique"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("training_sessions.id"), nullable=False, index=True
    )
    athlete_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    reviewed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    session: Mapped["TrainingSession"] = relationship("TrainingSession")

    def __repr__(self) -> str:
        return (
            f"<LeaveRequest(id={self.id}, session_id={self.session_id}, "
            f"athlete_id={self.athlete_id}, status={self.status})>"
        )
