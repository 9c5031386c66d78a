"""Notification service layer.

Business logic for:
- Admin sends to one user or to every active user
- System notifications (access request decisions)
- Listing with cursor pagination, unread counts, read state and deletion
- Best-effort real-time publish on Redis pub/sub
"""

import json
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from redis.exceptions import RedisError

from learnhub.auth.session import SessionContext
from learnhub.core.database.errors import storage_guard
from learnhub.core.dates import utc_now
from learnhub.core.exceptions import NotFoundError, ValidationFailedError
from learnhub.core.redis import notification_channel, unread_count_key
from learnhub.users.service import UserNotFoundError

from .models import (
    Notification,
    NotificationCategory,
    NotificationScope,
    NotificationSeverity,
    create_notification,
)
from .schemas import (
    NotificationListResponse,
    NotificationResponse,
    decode_cursor,
    encode_cursor,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from learnhub.users.service import UserService


logger = structlog.get_logger(__name__)

# Rows scanned when a notification is addressed by id only
RECENT_SCAN_LIMIT = 1000
UNREAD_CACHE_TTL = 300


class NotificationNotFoundError(NotFoundError):
    def __init__(self, message: str = "Notification not found"):
        super().__init__(message, "notification_not_found")


class InvalidCursorError(ValidationFailedError):
    def __init__(self, message: str = "Invalid pagination cursor"):
        super().__init__(message, "invalid_cursor")


class NotificationService:
    """Service for notification management."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        user_service: "UserService",
        redis: "Redis | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.user_service = user_service
        self.redis = redis
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {ks}.notifications
            (user_id, notification_id, title, message, severity, category,
             related_entity_id, is_read, read_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_notifications = self.session.prepare(f"""
            SELECT * FROM {ks}.notifications
            WHERE user_id = ?
            LIMIT ?
        """)
        self._get_notifications_cursor = self.session.prepare(f"""
            SELECT * FROM {ks}.notifications
            WHERE user_id = ? AND created_at < ?
            LIMIT ?
        """)
        self._mark_read = self.session.prepare(f"""
            UPDATE {ks}.notifications
            SET is_read = true, read_at = ?
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)
        self._delete_notification = self.session.prepare(f"""
            DELETE FROM {ks}.notifications
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)
        self._incr_unread = self.session.prepare(f"""
            UPDATE {ks}.notification_unread_counts
            SET count = count + 1
            WHERE user_id = ?
        """)
        self._decr_unread = self.session.prepare(f"""
            UPDATE {ks}.notification_unread_counts
            SET count = count - ?
            WHERE user_id = ?
        """)
        self._get_unread_count = self.session.prepare(f"""
            SELECT count FROM {ks}.notification_unread_counts
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Sending
    # ==========================================================================

    async def send(
        self,
        ctx: SessionContext,
        scope: NotificationScope,
        title: str,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
        category: NotificationCategory = NotificationCategory.GENERAL,
        related_entity_id: UUID | None = None,
        user_id: UUID | None = None,
    ) -> int:
        """Send a notification and return the number of recipients (admin).

        Raises:
            ValidationFailedError: Scope single without user_id
            UserNotFoundError: Unknown recipient
        """
        ctx.require_admin()
        if scope == NotificationScope.SINGLE:
            if user_id is None:
                raise ValidationFailedError("user_id is required for a single recipient")
            if not await self.user_service.get_user(user_id):
                raise UserNotFoundError
            recipients = [user_id]
        else:
            recipients = await self.user_service.list_active_user_ids()

        for recipient in recipients:
            await self.notify_user(
                user_id=recipient,
                title=title,
                message=message,
                severity=severity,
                category=category,
                related_entity_id=related_entity_id,
            )

        logger.info(
            "notification_sent",
            scope=scope.value,
            delivered_count=len(recipients),
            category=NotificationCategory(category).value,
        )
        return len(recipients)

    async def notify_user(
        self,
        user_id: UUID,
        title: str,
        message: str,
        severity: NotificationSeverity | str = NotificationSeverity.INFO,
        category: NotificationCategory | str = NotificationCategory.GENERAL,
        related_entity_id: UUID | None = None,
    ) -> Notification:
        """Store a notification for one user and publish it."""
        notification = create_notification(
            user_id=user_id,
            title=title,
            message=message,
            severity=NotificationSeverity(severity),
            category=NotificationCategory(category),
            related_entity_id=related_entity_id,
        )
        with storage_guard("create_notification", user_id=str(user_id)):
            await self.session.aexecute(
                self._insert_notification,
                [
                    notification.user_id,
                    notification.notification_id,
                    notification.title,
                    notification.message,
                    notification.severity.value,
                    notification.category.value,
                    notification.related_entity_id,
                    notification.is_read,
                    notification.read_at,
                    notification.created_at,
                ],
            )
            await self.session.aexecute(self._incr_unread, [user_id])

        await self._invalidate_cache(user_id)
        await self._publish(notification)
        return notification

    async def _publish(self, notification: Notification) -> None:
        """Publish to the recipient's channel. Never fails the send."""
        if not self.redis:
            return
        payload = {"type": "notification", "data": notification.to_dict()}
        try:
            await self.redis.publish(
                notification_channel(str(notification.user_id)), json.dumps(payload)
            )
        except RedisError as e:
            logger.warning(
                "notification_publish_failed",
                notification_id=str(notification.notification_id),
                error=str(e),
            )

    # ==========================================================================
    # Reading
    # ==========================================================================

    async def get_notifications(
        self,
        ctx: SessionContext,
        limit: int = 20,
        cursor: str | None = None,
        unread_only: bool = False,
    ) -> NotificationListResponse:
        """Notifications of the caller, newest first, with pagination.

        Raises:
            InvalidCursorError: Malformed cursor
        """
        if cursor:
            try:
                created_at, _ = decode_cursor(cursor)
            except ValueError as e:
                raise InvalidCursorError from e
            rows = await self.session.aexecute(
                self._get_notifications_cursor, [ctx.user_id, created_at, limit + 1]
            )
        else:
            rows = await self.session.aexecute(
                self._get_notifications, [ctx.user_id, limit + 1]
            )

        notifications = [
            Notification.from_row(row)
            for row in rows
            if not (unread_only and row.is_read)
        ]
        has_more = len(notifications) > limit
        notifications = notifications[:limit]

        next_cursor = None
        if has_more and notifications:
            last = notifications[-1]
            next_cursor = encode_cursor(last.created_at, last.notification_id)

        return NotificationListResponse(
            items=[NotificationResponse.from_notification(n) for n in notifications],
            unread_count=await self.get_unread_count(ctx.user_id),
            has_more=has_more,
            next_cursor=next_cursor,
        )

    async def get_unread_count(self, user_id: UUID) -> int:
        """Unread count, cached in Redis for a few minutes."""
        key = unread_count_key(str(user_id))
        if self.redis:
            try:
                cached = await self.redis.get(key)
                if cached is not None:
                    return int(cached)
            except RedisError as e:
                logger.warning("unread_cache_read_failed", error=str(e))

        result = await self.session.aexecute(self._get_unread_count, [user_id])
        row = result.one()
        count = max(row.count or 0, 0) if row else 0

        if self.redis:
            try:
                await self.redis.setex(key, UNREAD_CACHE_TTL, str(count))
            except RedisError as e:
                logger.warning("unread_cache_write_failed", error=str(e))
        return count

    # ==========================================================================
    # Read State and Deletion
    # ==========================================================================

    async def mark_as_read(self, ctx: SessionContext, notification_ids: list[UUID]) -> int:
        """Mark the given notifications of the caller as read."""
        wanted = set(notification_ids)
        rows = await self._recent_rows(ctx.user_id)
        return await self._mark_rows(
            ctx.user_id, [row for row in rows if row.notification_id in wanted]
        )

    async def mark_all_as_read(self, ctx: SessionContext) -> int:
        return await self._mark_rows(ctx.user_id, await self._recent_rows(ctx.user_id))

    async def delete_notification(self, ctx: SessionContext, notification_id: UUID) -> None:
        """Delete one of the caller's notifications.

        Raises:
            NotificationNotFoundError: Not found among the caller's notifications
        """
        row = next(
            (
                r
                for r in await self._recent_rows(ctx.user_id)
                if r.notification_id == notification_id
            ),
            None,
        )
        if not row:
            raise NotificationNotFoundError

        with storage_guard("delete_notification", notification_id=str(notification_id)):
            await self.session.aexecute(
                self._delete_notification,
                [ctx.user_id, row.created_at, row.notification_id],
            )
            if not row.is_read:
                await self.session.aexecute(self._decr_unread, [1, ctx.user_id])
        await self._invalidate_cache(ctx.user_id)

    async def _recent_rows(self, user_id: UUID) -> list:
        rows = await self.session.aexecute(
            self._get_notifications, [user_id, RECENT_SCAN_LIMIT]
        )
        return list(rows)

    async def _mark_rows(self, user_id: UUID, rows: list) -> int:
        now = utc_now()
        marked = 0
        with storage_guard("mark_notifications_read", user_id=str(user_id)):
            for row in rows:
                if row.is_read:
                    continue
                await self.session.aexecute(
                    self._mark_read, [now, user_id, row.created_at, row.notification_id]
                )
                marked += 1
            if marked:
                await self.session.aexecute(self._decr_unread, [marked, user_id])

        if marked:
            await self._invalidate_cache(user_id)
        return marked

    async def _invalidate_cache(self, user_id: UUID) -> None:
        if not self.redis:
            return
        try:
            await self.redis.delete(unread_count_key(str(user_id)))
        except RedisError as e:
            logger.warning("unread_cache_invalidate_failed", error=str(e))
