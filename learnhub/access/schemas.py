"""Pydantic schemas for the enrollment gate and access requests."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from learnhub.access.models import (
    AccessDecision,
    AccessDecisionType,
    AccessReason,
    AccessRequest,
    AccessRequestStatus,
)


class AccessDecisionResponse(BaseModel):
    allowed: bool
    reason: AccessReason
    pending_request_id: UUID | None = None

    @classmethod
    def from_decision(cls, decision: AccessDecision) -> "AccessDecisionResponse":
        return cls(
            allowed=decision.allowed,
            reason=decision.reason,
            pending_request_id=decision.pending_request_id,
        )


class CreateAccessRequest(BaseModel):
    """Student request for a private course."""

    course_id: UUID
    message: str | None = Field(None, max_length=1000)


class ResolveAccessRequest(BaseModel):
    """Admin decision on a pending request."""

    decision: AccessDecisionType
    admin_response: str | None = Field(None, max_length=1000)


class AccessRequestResponse(BaseModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    status: AccessRequestStatus
    message: str | None = None
    admin_response: str | None = None
    resolved_by: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, request: AccessRequest) -> "AccessRequestResponse":
        return cls(
            id=request.id,
            user_id=request.user_id,
            course_id=request.course_id,
            status=AccessRequestStatus(request.status),
            message=request.message,
            admin_response=request.admin_response,
            resolved_by=request.resolved_by,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )


class AccessRequestListResponse(BaseModel):
    items: list[AccessRequestResponse]
    total: int
