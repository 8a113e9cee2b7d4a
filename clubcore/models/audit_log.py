"""Audit log model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from clubcore.core.database import Base


class AuditLog(Base):
    """System-wide audit trail, one row per committed command."""

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Timestamp
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Who made the change
    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    user_role: Mapped[str] = mapped_column(String(20), nullable=False, default="system")

    # What happened
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)  # 'membership.submit', 'attendance.check_in', ...
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # 'membership_application', 'leave_request', 'attendance'
    entity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Details
    description: Mapped[str] = mapped_column(Text, nullable=False)
    changes_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Tracing
    correlation_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    causation_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    parent_causation_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    __table_args__ = (
        Index('idx_audit_timestamp', 'timestamp'),
        Index('idx_audit_entity_type_id', 'entity_type', 'entity_id'),
        Index('idx_audit_correlation', 'correlation_id'),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action='{self.action_type}', "
            f"entity='{self.entity_type}', entity_id={self.entity_id}, "
            f"correlation_id={self.correlation_id})>"
        )
