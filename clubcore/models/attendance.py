"""Attendance model."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubcore.core.database import Base
from clubcore.models.base import new_id


class AttendanceStatus(str, Enum):
    """Attendance status enum."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"
    EXCUSED = "excused"


class CheckInMethod(str, Enum):
    """How an attendance record came to exist."""

    SELF_CHECKIN = "self_checkin"
    LEAVE_APPROVAL = "leave_approval"


class AttendanceRecord(Base):
    """One athlete's attendance at one training session."""

    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint(
            "session_id", "athlete_id",
            name="attendance_session_athlete_unique"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("training_sessions.id"), nullable=False, index=True
    )
    athlete_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    status: Mapped[AttendanceStatus] = mapped_column(
        SQLEnum(AttendanceStatus), nullable=False
    )
    check_in_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    check_in_method: Mapped[CheckInMethod] = mapped_column(
        SQLEnum(CheckInMethod), nullable=False, default=CheckInMethod.SELF_CHECKIN
    )
    leave_request_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    session: Mapped["TrainingSession"] = relationship(
        "TrainingSession", back_populates="attendance_records"
    )

    def __repr__(self) -> str:
        return (
            f"<AttendanceRecord(id={self.id}, session_id={self.session_id}, "
            f"athlete_id={self.athlete_id}, status={self.status})>"
        )
