"""FastAPI dependencies for dashboard metrics."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.metrics.service import AdminMetricsService, StudentMetricsService


def _from_state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Metrics not available",
        )
    return service


async def get_student_metrics_service(request: Request) -> StudentMetricsService:
    return _from_state(request, "student_metrics_service")


async def get_admin_metrics_service(request: Request) -> AdminMetricsService:
    return _from_state(request, "admin_metrics_service")


StudentMetricsServiceDep = Annotated[
    StudentMetricsService, Depends(get_student_metrics_service)
]
AdminMetricsServiceDep = Annotated[
    AdminMetricsService, Depends(get_admin_metrics_service)
]
