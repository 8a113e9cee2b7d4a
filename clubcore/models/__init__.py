"""Database models for the club workflow core."""

from clubcore.models.athlete_profile import AthleteProfile
from clubcore.models.attendance import AttendanceRecord, AttendanceStatus, CheckInMethod
from clubcore.models.audit_log import AuditLog
from clubcore.models.base import WorkflowStatus
from clubcore.models.club import Club
from clubcore.models.idempotency_key import IdempotencyRecord
from clubcore.models.leave_request import LeaveRequest
from clubcore.models.membership_application import MembershipApplication
from clubcore.models.parent_connection import ParentConnection, ParentRelationship
from clubcore.models.training_session import TrainingSession, TrainingSessionStatus

__all__ = [
    "Club",
    "TrainingSession",
    "TrainingSessionStatus",
    "AttendanceRecord",
    "AttendanceStatus",
    "CheckInMethod",
    "MembershipApplication",
    "LeaveRequest",
    "WorkflowStatus",
    "AthleteProfile",
    "ParentConnection",
    "ParentRelationship",
    "IdempotencyRecord",
    "AuditLog",
]
