"""Notification API routes.

Endpoints for:
- GET /v1/notifications - List own notifications
- GET /v1/notifications/unread-count - Get unread count
- POST /v1/notifications/mark-read - Mark specific as read
- POST /v1/notifications/mark-all-read - Mark all as read
- DELETE /v1/notifications/{notification_id} - Delete one
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from learnhub.auth.dependencies import CurrentSession
from learnhub.core.exceptions import LearnHubError, handle_domain_error
from learnhub.notifications.dependencies import NotificationServiceDep
from learnhub.notifications.schemas import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    UnreadCountResponse,
)


router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    ctx: CurrentSession,
    service: NotificationServiceDep,
    limit: int = Query(default=20, ge=1, le=100, description="Items per page"),
    cursor: str | None = Query(default=None, description="Pagination cursor"),
    unread_only: bool = Query(default=False, description="Only show unread"),
) -> NotificationListResponse:
    try:
        return await service.get_notifications(
            ctx, limit=limit, cursor=cursor, unread_only=unread_only
        )
    except LearnHubError as e:
        raise handle_domain_error(e) from e


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    ctx: CurrentSession, service: NotificationServiceDep
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await service.get_unread_count(ctx.user_id))


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_notifications_read(
    body: MarkReadRequest, ctx: CurrentSession, service: NotificationServiceDep
) -> MarkReadResponse:
    try:
        marked_count = await service.mark_as_read(ctx, body.notification_ids)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return MarkReadResponse(
        marked_count=marked_count,
        unread_count=await service.get_unread_count(ctx.user_id),
    )


@router.post("/mark-all-read", response_model=MarkReadResponse)
async def mark_all_read(
    ctx: CurrentSession, service: NotificationServiceDep
) -> MarkReadResponse:
    try:
        marked_count = await service.mark_all_as_read(ctx)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
    return MarkReadResponse(
        marked_count=marked_count,
        unread_count=await service.get_unread_count(ctx.user_id),
    )


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID, ctx: CurrentSession, service: NotificationServiceDep
) -> None:
    try:
        await service.delete_notification(ctx, notification_id)
    except LearnHubError as e:
        raise handle_domain_error(e) from e
