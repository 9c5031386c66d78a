"""Enrollment gate and access request API endpoints.

Student routes:
- GET /v1/courses/{course_id}/access - Gate decision (enrolls on free courses)
- POST /v1/access-requests - Ask for access to a private course
- GET /v1/access-requests/me - Own requests

Admin routes:
- GET /v1/admin/access-requests - All requests, optional status filter
- GET /v1/admin/access-requests/{request_id}
- POST /v1/admin/access-requests/{request_id}/resolve - Approve or reject
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from learnhub.access.dependencies import AccessServiceDep
from learnhub.access.models import AccessRequestStatus
from learnhub.access.schemas import (
    AccessDecisionResponse,
    AccessRequestListResponse,
    AccessRequestResponse,
    CreateAccessRequest,
    ResolveAccessRequest,
)
from learnhub.auth.dependencies import AdminSession, CurrentSession
from learnhub.core.exceptions import LearnHubError, handle_domain_error


router = APIRouter(prefix="/v1", tags=["access"])
admin_router = APIRouter(prefix="/v1/admin/access-requests", tags=["admin-access"])


@router.get("/courses/{course_id}/access", response_model=AccessDecisionResponse)
async def check_course_access(
    course_id: UUID, ctx: CurrentSession, service: AccessServiceDep
) -> AccessDecisionResponse:
    """Whether the caller may view the course. Free courses enroll on first access."""
    try:
        decision = await service.can_access(ctx, course_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return AccessDecisionResponse.from_decision(decision)


@router.post(
    "/access-requests",
    response_model=AccessRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Pending request exists or already enrolled"}},
)
async def create_access_request(
    data: CreateAccessRequest, ctx: CurrentSession, service: AccessServiceDep
) -> AccessRequestResponse:
    try:
        request = await service.create_request(ctx, data.course_id, data.message)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return AccessRequestResponse.from_entity(request)


@router.get("/access-requests/me", response_model=AccessRequestListResponse)
async def list_my_access_requests(
    ctx: CurrentSession, service: AccessServiceDep
) -> AccessRequestListResponse:
    requests = await service.list_my_requests(ctx)
    return AccessRequestListResponse(
        items=[AccessRequestResponse.from_entity(r) for r in requests],
        total=len(requests),
    )


# ==============================================================================
# Admin
# ==============================================================================


@admin_router.get("", response_model=AccessRequestListResponse)
async def list_access_requests(
    ctx: AdminSession,
    service: AccessServiceDep,
    status_filter: Annotated[
        AccessRequestStatus | None, Query(alias="status", description="Filter by status")
    ] = None,
) -> AccessRequestListResponse:
    try:
        requests = await service.list_requests(ctx, status_filter)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return AccessRequestListResponse(
        items=[AccessRequestResponse.from_entity(r) for r in requests],
        total=len(requests),
    )


@admin_router.get("/{request_id}", response_model=AccessRequestResponse)
async def get_access_request(
    request_id: UUID, ctx: AdminSession, service: AccessServiceDep
) -> AccessRequestResponse:
    try:
        request = await service.require_request(request_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return AccessRequestResponse.from_entity(request)


@admin_router.post(
    "/{request_id}/resolve",
    response_model=AccessRequestResponse,
    responses={409: {"description": "Request is not pending"}},
)
async def resolve_access_request(
    request_id: UUID,
    data: ResolveAccessRequest,
    ctx: AdminSession,
    service: AccessServiceDep,
) -> AccessRequestResponse:
    """Approve (creating the enrollment) or reject a pending request."""
    try:
        request = await service.resolve(
            ctx, request_id, data.decision, data.admin_response
        )
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return AccessRequestResponse.from_entity(request)
