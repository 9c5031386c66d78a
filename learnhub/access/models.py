"""Database models for access requests to private courses.

Tables:
- access_requests: one row per request, keyed by id
- pending_access_requests: guard row per (user, course) while a request is
  pending. Inserted with ``IF NOT EXISTS`` on create and removed with
  ``DELETE ... IF request_id = ?`` when resolved, which makes "one pending
  request per user and course" a storage-level constraint.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learnhub.core.dates import ensure_utc_aware, utc_now


class AccessRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AccessDecisionType(str, Enum):
    """Admin decision when resolving a request."""

    APPROVED = "approved"
    REJECTED = "rejected"


class AccessReason(str, Enum):
    """Why the gate allowed or refused access."""

    ADMIN = "admin"
    ENROLLED = "enrolled"
    AUTO_ENROLLED = "auto_enrolled"
    REQUIRES_ACCESS_REQUEST = "requires_access_request"
    NOT_PUBLISHED = "not_published"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ACCESS_REQUESTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.access_requests (
    id UUID PRIMARY KEY,
    user_id UUID,
    course_id UUID,
    status TEXT,
    message TEXT,
    admin_response TEXT,
    resolved_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

PENDING_ACCESS_REQUESTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.pending_access_requests (
    user_id UUID,
    course_id UUID,
    request_id UUID,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id))
)
"""

ACCESS_TABLES_CQL = [
    ACCESS_REQUESTS_TABLE_CQL,
    PENDING_ACCESS_REQUESTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class AccessRequest:
    """A student's petition for enrollment in a private course.

    Attributes:
        id: Unique identifier
        user_id: Requesting student
        course_id: Private course
        status: pending, approved or rejected
        message: Optional note from the student
        admin_response: Optional note from the resolving admin
        resolved_by: Admin who approved or rejected
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        id: UUID | None = None,
        status: str = AccessRequestStatus.PENDING.value,
        message: str | None = None,
        admin_response: str | None = None,
        resolved_by: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.course_id = course_id
        self.status = status or AccessRequestStatus.PENDING.value
        self.message = message
        self.admin_response = admin_response
        self.resolved_by = resolved_by
        self.created_at = ensure_utc_aware(created_at) or utc_now()
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_pending(self) -> bool:
        return self.status == AccessRequestStatus.PENDING.value

    @classmethod
    def from_row(cls, row: Any) -> "AccessRequest":
        return cls(
            id=row.id,
            user_id=row.user_id,
            course_id=row.course_id,
            status=row.status,
            message=row.message,
            admin_response=row.admin_response,
            resolved_by=row.resolved_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<AccessRequest {self.id} ({self.status})>"


@dataclass(frozen=True)
class AccessDecision:
    """Result of the enrollment gate."""

    allowed: bool
    reason: AccessReason
    pending_request_id: UUID | None = None
