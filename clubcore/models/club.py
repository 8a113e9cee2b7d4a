"""Club model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubcore.core.database import Base
from clubcore.models.base import new_id


class Club(Base):
    """Club model: the tenant-scoping unit."""

    __tablename__ = "clubs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sport_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    training_sessions: Mapped[list["TrainingSession"]] = relationship(
        "TrainingSession", back_populates="club"
    )

    def __repr__(self) -> str:
        return f"<Club(id={self.id}, name='{self.name}')>"
