"""Idempotency record model."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from clubcore.core.database import Base
from clubcore.utils.timezone import now_utc


class IdempotencyRecord(Base):
    """Cached result of the first execution of a keyed operation. Never updated."""

    __tablename__ = "idempotency_keys"
    __table_args__ = (
        Index("idx_idempotency_keys_created_at", "created_at"),
    )

    # Composite primary key makes the first insert the only one that wins
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    operation_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    actor_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    result: Mapped[Any] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc
    )

    def __repr__(self) -> str:
        return f"<IdempotencyRecord(key='{self.key}', operation_id='{self.operation_id}')>"
