"""Tests for the notification endpoints."""

from unittest.mock import Mock
from uuid import uuid4

import pytest

from learnhub.notifications.models import NotificationScope
from learnhub.notifications.service import NotificationNotFoundError, NotificationService


@pytest.fixture
def notification_service(app) -> Mock:
    service = Mock(spec=NotificationService)
    service.get_unread_count.return_value = 2
    app.state.notification_service = service
    return service


def test_unread_count(client, notification_service, student, headers_for):
    response = client.get("/v1/notifications/unread-count", headers=headers_for(student))

    assert response.status_code == 200
    assert response.json() == {"count": 2}
    notification_service.get_unread_count.assert_awaited_once_with(student.user_id)


def test_mark_read(client, notification_service, student, headers_for):
    notification_service.mark_as_read.return_value = 1
    wanted = uuid4()

    response = client.post(
        "/v1/notifications/mark-read",
        headers=headers_for(student),
        json={"notification_ids": [str(wanted)]},
    )

    assert response.status_code == 200
    assert response.json() == {"marked_count": 1, "unread_count": 2}
    ctx, ids = notification_service.mark_as_read.await_args.args
    assert ctx.user_id == student.user_id
    assert ids == [wanted]


def test_mark_read_needs_ids(client, notification_service, student, headers_for):
    response = client.post(
        "/v1/notifications/mark-read",
        headers=headers_for(student),
        json={"notification_ids": []},
    )

    assert response.status_code == 422


def test_delete_unknown(client, notification_service, student, headers_for):
    notification_service.delete_notification.side_effect = NotificationNotFoundError()

    response = client.delete(f"/v1/notifications/{uuid4()}", headers=headers_for(student))

    assert response.status_code == 404


def test_admin_broadcast(client, notification_service, admin, headers_for):
    notification_service.send.return_value = 3

    response = client.post(
        "/v1/admin/notifications",
        headers=headers_for(admin),
        json={"scope": "all", "title": "Maintenance", "message": "Back at 10:00"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "delivered_count": 3}
    assert notification_service.send.await_args.kwargs["scope"] == NotificationScope.ALL


def test_student_cannot_send(client, notification_service, student, headers_for):
    response = client.post(
        "/v1/admin/notifications",
        headers=headers_for(student),
        json={"scope": "all", "title": "Hi", "message": "Hello"},
    )

    assert response.status_code == 403
    notification_service.send.assert_not_called()


def test_requires_service(client, student, headers_for):
    response = client.get("/v1/notifications", headers=headers_for(student))

    assert response.status_code == 503
