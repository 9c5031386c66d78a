"""Pydantic schemas for notifications."""

import base64
from datetime import datetime
from typing import Self
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from learnhub.notifications.models import (
    Notification,
    NotificationCategory,
    NotificationScope,
    NotificationSeverity,
)


# ==============================================================================
# Response Schemas
# ==============================================================================


class NotificationResponse(BaseModel):
    id: UUID
    title: str
    message: str
    severity: NotificationSeverity
    category: NotificationCategory
    related_entity_id: UUID | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.notification_id,
            title=notification.title,
            message=notification.message,
            severity=notification.severity,
            category=notification.category,
            related_entity_id=notification.related_entity_id,
            is_read=notification.is_read,
            read_at=notification.read_at,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    """Paginated notification list response."""

    items: list[NotificationResponse] = Field(description="List of notifications")
    unread_count: int = Field(description="Unread notification count")
    has_more: bool = Field(description="Whether more notifications exist")
    next_cursor: str | None = Field(None, description="Cursor for next page")


class UnreadCountResponse(BaseModel):
    count: int = Field(description="Number of unread notifications")


class MarkReadResponse(BaseModel):
    marked_count: int = Field(description="Number of notifications marked as read")
    unread_count: int = Field(description="Remaining unread count")


class SendNotificationResponse(BaseModel):
    """Response after an admin send."""

    success: bool = True
    delivered_count: int = Field(description="Number of recipients")


# ==============================================================================
# Request Schemas
# ==============================================================================


class MarkReadRequest(BaseModel):
    notification_ids: list[UUID] = Field(
        min_length=1, description="Notification IDs to mark as read"
    )


class SendNotificationRequest(BaseModel):
    """Admin request to notify one user or every active user."""

    scope: NotificationScope = NotificationScope.SINGLE
    user_id: UUID | None = Field(None, description="Recipient when scope is single")
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=1000)
    severity: NotificationSeverity = NotificationSeverity.INFO
    category: NotificationCategory = NotificationCategory.GENERAL
    related_entity_id: UUID | None = None

    @model_validator(mode="after")
    def check_recipient(self) -> Self:
        if self.scope == NotificationScope.SINGLE and self.user_id is None:
            msg = "user_id is required when scope is single"
            raise ValueError(msg)
        return self


# ==============================================================================
# Cursor Encoding/Decoding
# ==============================================================================


def encode_cursor(created_at: datetime, notification_id: UUID) -> str:
    """Encode pagination cursor."""
    cursor_str = f"{created_at.isoformat()}|{notification_id}"
    return base64.urlsafe_b64encode(cursor_str.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Decode pagination cursor.

    Raises:
        ValueError: Malformed cursor
    """
    try:
        cursor_str = base64.urlsafe_b64decode(cursor.encode()).decode()
        created_at, notification_id = cursor_str.split("|")
        return datetime.fromisoformat(created_at), UUID(notification_id)
    except (ValueError, UnicodeDecodeError) as e:
        msg = f"Invalid cursor format: {e}"
        raise ValueError(msg) from e
