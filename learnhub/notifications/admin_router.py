"""Admin API routes for notifications.

- POST /v1/admin/notifications - Send to one user or to every active user
"""

from fastapi import APIRouter

from learnhub.auth.dependencies import AdminSession
from learnhub.core.exceptions import LearnHubError, handle_domain_error
from learnhub.notifications.dependencies import NotificationServiceDep
from learnhub.notifications.schemas import (
    SendNotificationRequest,
    SendNotificationResponse,
)


router = APIRouter(prefix="/v1/admin/notifications", tags=["admin-notifications"])


@router.post(
    "",
    response_model=SendNotificationResponse,
    responses={404: {"description": "Recipient not found"}},
)
async def send_notification(
    body: SendNotificationRequest,
    ctx: AdminSession,
    service: NotificationServiceDep,
) -> SendNotificationResponse:
    """Send a notification. Scope ``all`` fans out to every active user."""
    try:
        delivered = await service.send(
            ctx,
            scope=body.scope,
            title=body.title,
            message=body.message,
            severity=body.severity,
            category=body.category,
            related_entity_id=body.related_entity_id,
            user_id=body.user_id,
        )
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return SendNotificationResponse(delivered_count=delivered)
