"""Dashboard metrics API endpoints.

- GET /v1/metrics/me - Personal dashboard of the caller
- GET /v1/admin/metrics - Platform dashboard (admin)
"""

from fastapi import APIRouter

from learnhub.auth.dependencies import AdminSession, CurrentSession
from learnhub.core.exceptions import LearnHubError, handle_domain_error
from learnhub.metrics.dependencies import (
    AdminMetricsServiceDep,
    StudentMetricsServiceDep,
)
from learnhub.metrics.schemas import AdminMetricsResponse, StudentMetricsResponse


router = APIRouter(prefix="/v1/metrics", tags=["metrics"])
admin_router = APIRouter(prefix="/v1/admin/metrics", tags=["admin-metrics"])


@router.get("/me", response_model=StudentMetricsResponse)
async def get_my_metrics(
    ctx: CurrentSession, service: StudentMetricsServiceDep
) -> StudentMetricsResponse:
    """Enrollments, study hours, streak, monthly progress and recent activity."""
    return await service.get_summary(ctx)


@admin_router.get("", response_model=AdminMetricsResponse)
async def get_platform_metrics(
    ctx: AdminSession, service: AdminMetricsServiceDep
) -> AdminMetricsResponse:
    try:
        return await service.get_summary(ctx)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
