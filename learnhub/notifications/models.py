"""Database models for notifications.

Cassandra table definitions for:
- notifications: partitioned by recipient, newest first
- notification_unread_counts: counter per recipient
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from learnhub.core.dates import ensure_utc_aware, utc_now


class NotificationScope(str, Enum):
    """Who receives a notification sent by an admin."""

    SINGLE = "single"
    ALL = "all"


class NotificationSeverity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationCategory(str, Enum):
    GENERAL = "general"
    COURSE = "course"
    MODULE = "module"
    LESSON = "lesson"
    ACHIEVEMENT = "achievement"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    notification_id UUID,
    title TEXT,
    message TEXT,
    severity TEXT,
    category TEXT,
    related_entity_id UUID,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

UNREAD_COUNT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notification_unread_counts (
    user_id UUID PRIMARY KEY,
    count COUNTER
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    UNREAD_COUNT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification delivered to one recipient."""

    notification_id: UUID
    user_id: UUID
    title: str
    message: str
    severity: NotificationSeverity
    category: NotificationCategory
    related_entity_id: UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            title=row.title,
            message=row.message,
            severity=NotificationSeverity(row.severity or "info"),
            category=NotificationCategory(row.category or "general"),
            related_entity_id=row.related_entity_id,
            is_read=row.is_read or False,
            read_at=ensure_utc_aware(row.read_at),
            created_at=ensure_utc_aware(row.created_at),
        )

    def to_dict(self) -> dict[str, Any]:
        """Payload published on the recipient's pub/sub channel."""
        return {
            "id": str(self.notification_id),
            "title": self.title,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "related_entity_id": (
                str(self.related_entity_id) if self.related_entity_id else None
            ),
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
        }


def create_notification(
    user_id: UUID,
    title: str,
    message: str,
    severity: NotificationSeverity = NotificationSeverity.INFO,
    category: NotificationCategory = NotificationCategory.GENERAL,
    related_entity_id: UUID | None = None,
) -> Notification:
    """Create an unread notification stamped now."""
    return Notification(
        notification_id=uuid4(),
        user_id=user_id,
        title=title,
        message=message,
        severity=severity,
        category=category,
        related_entity_id=related_entity_id,
        is_read=False,
        read_at=None,
        created_at=utc_now(),
    )
