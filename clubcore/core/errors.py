"""Domain error taxonomy.

Every error raised by the workflow core carries a stable ``kind`` (the
taxonomy bucket), a more specific ``code`` and a human-readable message.
The API layer renders them as ``{"error": {"kind", "code", "message"}}``;
storage exceptions never reach the caller directly.
"""

from typing import Any, Dict, Optional

# Shared by AuthorizationError and NotFoundError so that a denied lookup and
# a missing resource are indistinguishable to non-admin callers.
ACCESS_DENIED_MESSAGE = "You do not have access to this resource"


class ClubCoreError(Exception):
    """Base class for all domain errors."""

    kind: str = "error"
    code: str = "error"
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "code": self.code, "message": self.message}


class ValidationError(ClubCoreError):
    """Malformed or missing input."""

    kind = "validation"
    code = "invalid_input"
    status_code = 422
    default_message = "Invalid input"


class AuthenticationError(ClubCoreError):
    """Missing or invalid credentials. Never says which part was wrong."""

    kind = "authentication"
    code = "not_authenticated"
    status_code = 401
    default_message = "Could not validate credentials"


class AuthorizationError(ClubCoreError):
    """Role, club or relationship scope denied."""

    kind = "authorization"
    code = "access_denied"
    status_code = 403
    default_message = ACCESS_DENIED_MESSAGE


class NotFoundError(ClubCoreError):
    """Resource absent. Only surfaced to callers allowed to know that."""

    kind = "not_found"
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ClubCoreError):
    """Uniqueness violation or lost optimistic-concurrency race."""

    kind = "conflict"
    code = "conflict"
    status_code = 409
    default_message = "Resource already exists"


class StateError(ClubCoreError):
    """Illegal transition on a terminal record."""

    kind = "state"
    code = "invalid_transition"
    status_code = 409
    default_message = "Record has already been processed"


class TimeWindowError(ClubCoreError):
    """Check-in attempted outside the allowed window."""

    kind = "time_window"
    code = "outside_window"
    status_code = 422
    default_message = "Check-in is not open"


class IdempotencyKeyError(ClubCoreError):
    """Missing or malformed idempotency key."""

    kind = "idempotency_key"
    code = "invalid_idempotency_key"
    status_code = 400
    default_message = (
        "Idempotency-Key must be a UUID or an alphanumeric string of 16-255 "
        "characters containing at least one letter"
    )


class InternalError(ClubCoreError):
    """Generic failure for anything unexpected. Carries no internal detail."""

    kind = "internal_error"
    code = "internal_error"
    status_code = 500
    default_message = "An unexpected error occurred"


# Check-in specific codes
TOO_EARLY = "too_early"
TOO_LATE = "too_late"
ALREADY_CHECKED_IN = "already_checked_in"
