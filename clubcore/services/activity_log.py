"""Append-only activity log attached to workflow entities."""

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class ActivityLogEntry(BaseModel):
    """One immutable entry in an entity's activity log."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: str
    by_user: str
    timestamp: datetime
    by_role: Optional[str] = None
    from_status: Optional[str] = Field(default=None, alias="from")
    to_status: Optional[str] = Field(default=None, alias="to")
    notes: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict, as stored in the ``activity_log`` column."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ActivityLogEntry":
        return cls.model_validate(record)


def append_entry(log: Optional[Sequence[Dict[str, Any]]], entry: ActivityLogEntry) -> list:
    """Return a new log: every prior entry untouched, plus ``entry``."""
    return [*(log or []), entry.to_record()]


def is_prefix(earlier: Sequence[Dict[str, Any]], later: Sequence[Dict[str, Any]]) -> bool:
    """True when ``later`` starts with exactly the entries of ``earlier``."""
    return len(later) >= len(earlier) and list(later[: len(earlier)]) == list(earlier)
