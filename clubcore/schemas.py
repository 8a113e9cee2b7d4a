"""Response models shared by the command layer and the API."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from clubcore.models import AttendanceStatus, CheckInMethod


class ApplicationOut(BaseModel):
    """Membership application as returned to clients."""

    id: str
    user_id: str
    club_id: str
    personal_info: Dict[str, Any]
    documents: List[Dict[str, Any]]
    status: str
    review_info: Optional[Dict[str, Any]] = None
    activity_log: List[Dict[str, Any]]
    profile_id: Optional[str] = None
    version: int

    class Config:
        from_attributes = True


class LeaveRequestOut(BaseModel):
    """Leave request as returned to clients."""

    id: str
    session_id: str
    athlete_id: str
    reason: str
    status: str
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    activity_log: List[Dict[str, Any]]
    version: int

    class Config:
        from_attributes = True


class AttendanceOut(BaseModel):
    """Attendance record as returned to clients."""

    id: str
    session_id: str
    athlete_id: str
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    check_in_method: CheckInMethod
    leave_request_id: Optional[str] = None

    class Config:
        from_attributes = True


class AuditLogOut(BaseModel):
    """Audit row with its trace ids."""

    id: int
    timestamp: datetime
    user_id: Optional[str] = None
    user_role: str
    action_type: str
    entity_type: str
    entity_id: Optional[str] = None
    description: str
    changes_json: Optional[Dict[str, Any]] = None
    correlation_id: Optional[str] = None
    causation_id: Optional[str] = None
    parent_causation_id: Optional[str] = None

    class Config:
        from_attributes = True


class AuditLogsListResponse(BaseModel):
    logs: List[AuditLogOut]
    total: int
    causal_tree: Dict[str, List[str]]


def to_json(schema: type[BaseModel], record: Any) -> Dict[str, Any]:
    """Serialize an ORM row to a JSON-safe dict for caching and responses."""
    return schema.model_validate(record).model_dump(mode="json")
