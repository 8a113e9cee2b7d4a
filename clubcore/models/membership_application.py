"""Membership application model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from clubcore.core.database import Base
from clubcore.models.base import WorkflowMixin, new_id


class MembershipApplication(WorkflowMixin, Base):
    """An athlete's application to join a club."""

    __tablename__ = "membership_applications"
    __table_args__ = (
        UniqueConstraint("user_id", "club_id", name="membership_applications_user_club_unique"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    club_id: Mapped[str] = mapped_column(ForeignKey("clubs.id"), nullable=False, index=True)

    # {"full_name": ..., "phone_number": ..., "address": ..., "emergency_contact": ...}
    personal_info: Mapped[dict] = mapped_column(JSON, nullable=False)
    # [{"type": "id_card", "url": ..., "file_name": ..., "uploaded_at": ...}, ...]
    documents: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # {"reviewed_by", "reviewed_at", "reviewer_role", "notes"}
    review_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    profile_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("athlete_profiles.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @property
    def athlete_id(self) -> str:
        return self.user_id

    def __repr__(self) -> str:
        return (
            f"<MembershipApplication(id={self.id}, user_id={self.user_id}, "
            f"club_id={self.club_id}, status={self.status})>"
        )
