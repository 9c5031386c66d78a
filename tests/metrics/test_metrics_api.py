"""API tests for the dashboard endpoints."""

from unittest.mock import AsyncMock

from learnhub.metrics.schemas import AdminMetricsResponse, StudentMetricsResponse
from learnhub.metrics.service import AdminMetricsService, StudentMetricsService


def test_student_dashboard(app, client, student, headers_for) -> None:
    service = AsyncMock(spec=StudentMetricsService)
    service.get_summary.return_value = StudentMetricsResponse(
        enrolled_courses=2, total_study_time="1h 30min", current_streak=3
    )
    app.state.student_metrics_service = service

    response = client.get("/v1/metrics/me", headers=headers_for(student))

    assert response.status_code == 200
    data = response.json()
    assert data["enrolled_courses"] == 2
    assert data["total_study_time"] == "1h 30min"
    assert data["current_streak"] == 3
    assert service.get_summary.call_args.args[0].user_id == student.user_id


def test_admin_dashboard_requires_admin(app, client, student, admin, headers_for) -> None:
    service = AsyncMock(spec=AdminMetricsService)
    service.get_summary.return_value = AdminMetricsResponse(total_users=7)
    app.state.admin_metrics_service = service

    forbidden = client.get("/v1/admin/metrics", headers=headers_for(student))
    allowed = client.get("/v1/admin/metrics", headers=headers_for(admin))

    assert forbidden.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["total_users"] == 7


def test_metrics_unavailable_without_services(client, student, headers_for) -> None:
    response = client.get("/v1/metrics/me", headers=headers_for(student))
    assert response.status_code == 503
