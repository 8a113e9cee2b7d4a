"""Shared column helpers for models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from clubcore.utils.timezone import now_utc


def new_id() -> str:
    return str(uuid.uuid4())


class WorkflowStatus(str, Enum):
    """Lifecycle states shared by workflow entities."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not WorkflowStatus.PENDING


class WorkflowMixin:
    """Columns every state-machine governed entity carries.

    ``version`` is bumped on each transition and is the compare-and-swap
    guard; ``activity_log`` is only ever replaced by itself plus one entry.
    """

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WorkflowStatus.PENDING.value, index=True
    )
    activity_log: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=now_utc
    )
