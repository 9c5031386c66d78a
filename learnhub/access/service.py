"""Access service layer.

Business logic for:
- The enrollment gate (who may view a course's content)
- Access requests for private courses: pending -> approved | rejected
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from cassandra.query import BatchStatement, BatchType

from learnhub.auth.session import SessionContext
from learnhub.core.database.errors import CASSANDRA_ERRORS, storage_guard
from learnhub.core.dates import utc_now
from learnhub.core.exceptions import (
    DuplicateRequestError,
    InvalidStateTransitionError,
    LearnHubError,
    NotFoundError,
    StorageFailureError,
    ValidationFailedError,
)
from learnhub.courses.service import CourseNotFoundError
from learnhub.progress.models import Enrollment, EnrollmentSource
from learnhub.progress.service import AlreadyEnrolledError

from .models import (
    AccessDecision,
    AccessDecisionType,
    AccessReason,
    AccessRequest,
    AccessRequestStatus,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.courses.service import CourseService
    from learnhub.notifications.service import NotificationService
    from learnhub.progress.service import EnrollmentService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AccessRequestNotFoundError(NotFoundError):
    def __init__(self, message: str = "Access request not found"):
        super().__init__(message, "access_request_not_found")


class CourseNotPrivateError(ValidationFailedError):
    def __init__(self, message: str = "Free courses do not need an access request"):
        super().__init__(message, "course_not_private")


# ==============================================================================
# Access Service
# ==============================================================================


class AccessService:
    """Enrollment gate and access request workflow."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        enrollment_service: "EnrollmentService",
        notification_service: "NotificationService | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.enrollment_service = enrollment_service
        self.notification_service = notification_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace
        self._get_request = self.session.prepare(
            f"SELECT * FROM {ks}.access_requests WHERE id = ?"
        )
        self._list_requests = self.session.prepare(f"SELECT * FROM {ks}.access_requests")
        self._insert_request = self.session.prepare(f"""
            INSERT INTO {ks}.access_requests
            (id, user_id, course_id, status, message, admin_response,
             resolved_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_status = self.session.prepare(f"""
            UPDATE {ks}.access_requests
            SET status = ?, admin_response = ?, resolved_by = ?, updated_at = ?
            WHERE id = ?
        """)

        # Pending guard: at most one pending request per (user, course)
        self._get_pending = self.session.prepare(f"""
            SELECT * FROM {ks}.pending_access_requests
            WHERE user_id = ? AND course_id = ?
        """)
        self._claim_pending = self.session.prepare(f"""
            INSERT INTO {ks}.pending_access_requests
            (user_id, course_id, request_id, created_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._restore_pending = self.session.prepare(f"""
            INSERT INTO {ks}.pending_access_requests
            (user_id, course_id, request_id, created_at)
            VALUES (?, ?, ?, ?)
        """)
        self._release_pending = self.session.prepare(f"""
            DELETE FROM {ks}.pending_access_requests
            WHERE user_id = ? AND course_id = ?
            IF request_id = ?
        """)
        self._drop_pending = self.session.prepare(f"""
            DELETE FROM {ks}.pending_access_requests
            WHERE user_id = ? AND course_id = ?
        """)

    # ==========================================================================
    # Enrollment Gate
    # ==========================================================================

    async def can_access(self, ctx: SessionContext, course_id: UUID) -> AccessDecision:
        """Decide whether the caller may view the course content.

        Free courses enroll the caller on first access; the enrollment is
        created once even under concurrent calls. Private courses are never
        granted here.

        Raises:
            CourseNotFoundError: Unknown course
        """
        course = await self.course_service.require_course(course_id)

        if ctx.is_admin:
            return AccessDecision(allowed=True, reason=AccessReason.ADMIN)
        if not course.is_published:
            return AccessDecision(allowed=False, reason=AccessReason.NOT_PUBLISHED)

        if await self.enrollment_service.get_enrollment(ctx.user_id, course_id):
            return AccessDecision(allowed=True, reason=AccessReason.ENROLLED)

        if course.is_free:
            _, created = await self.enrollment_service.create_enrollment(
                ctx.user_id, course_id, EnrollmentSource.AUTO
            )
            reason = AccessReason.AUTO_ENROLLED if created else AccessReason.ENROLLED
            return AccessDecision(allowed=True, reason=reason)

        pending = await self._pending_row(ctx.user_id, course_id)
        return AccessDecision(
            allowed=False,
            reason=AccessReason.REQUIRES_ACCESS_REQUEST,
            pending_request_id=pending.request_id if pending else None,
        )

    # ==========================================================================
    # Access Requests
    # ==========================================================================

    async def get_request(self, request_id: UUID) -> AccessRequest | None:
        rows = await self.session.aexecute(self._get_request, [request_id])
        row = rows.one()
        return AccessRequest.from_row(row) if row else None

    async def require_request(self, request_id: UUID) -> AccessRequest:
        request = await self.get_request(request_id)
        if not request:
            raise AccessRequestNotFoundError
        return request

    async def list_requests(
        self,
        ctx: SessionContext,
        status: AccessRequestStatus | None = None,
    ) -> list[AccessRequest]:
        """All requests, newest first, optionally filtered by status (admin)."""
        ctx.require_admin()
        requests = await self._all_requests()
        if status:
            requests = [r for r in requests if r.status == status.value]
        return requests

    async def list_my_requests(self, ctx: SessionContext) -> list[AccessRequest]:
        return [r for r in await self._all_requests() if r.user_id == ctx.user_id]

    async def create_request(
        self,
        ctx: SessionContext,
        course_id: UUID,
        message: str | None = None,
    ) -> AccessRequest:
        """Ask for access to a private course.

        Raises:
            CourseNotFoundError: Unknown or unpublished course
            CourseNotPrivateError: The course is free
            AlreadyEnrolledError: The caller is already enrolled
            DuplicateRequestError: A pending request already exists
        """
        course = await self.course_service.require_course(course_id)
        if not course.is_published and not ctx.is_admin:
            raise CourseNotFoundError
        if course.is_free:
            raise CourseNotPrivateError
        if await self.enrollment_service.get_enrollment(ctx.user_id, course_id):
            raise AlreadyEnrolledError
        if await self._pending_row(ctx.user_id, course_id):
            raise DuplicateRequestError

        request = AccessRequest(
            user_id=ctx.user_id,
            course_id=course_id,
            message=message.strip() if message else None,
        )

        with storage_guard("create_access_request", course_id=str(course_id)):
            result = await self.session.aexecute(
                self._claim_pending,
                [ctx.user_id, course_id, request.id, request.created_at],
            )
        if not result.was_applied:
            raise DuplicateRequestError

        try:
            await self.session.aexecute(self._insert_request, self._params(request))
        except CASSANDRA_ERRORS as e:
            logger.error(
                "access_request_insert_failed",
                request_id=str(request.id),
                error=str(e),
            )
            with storage_guard("release_access_request_guard", request_id=str(request.id)):
                await self.session.aexecute(self._drop_pending, [ctx.user_id, course_id])
            raise StorageFailureError() from e

        logger.info(
            "access_request_created",
            request_id=str(request.id),
            course_id=str(course_id),
        )
        return request

    async def resolve(
        self,
        ctx: SessionContext,
        request_id: UUID,
        decision: AccessDecisionType,
        admin_response: str | None = None,
    ) -> AccessRequest:
        """Approve or reject a pending request (admin).

        The transition is claimed by removing the pending guard row with a
        conditional delete; only one concurrent resolve can win it. The status
        update and, on approval, the enrollment rows are then written in one
        logged batch. If the batch fails the guard is restored, unless a
        re-read shows the batch landed anyway.

        Raises:
            AccessRequestNotFoundError: Unknown request
            InvalidStateTransitionError: The request is not pending
            StorageFailureError: The batch could not be written
        """
        ctx.require_admin()
        request = await self.require_request(request_id)
        if not request.is_pending:
            raise InvalidStateTransitionError

        with storage_guard("claim_access_request", request_id=str(request_id)):
            result = await self.session.aexecute(
                self._release_pending,
                [request.user_id, request.course_id, request.id],
            )
        if not result.was_applied:
            raise InvalidStateTransitionError

        approved = decision == AccessDecisionType.APPROVED
        now = utc_now()
        status = AccessRequestStatus.APPROVED if approved else AccessRequestStatus.REJECTED
        response = admin_response.strip() if admin_response else None

        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._update_status, [status.value, response, ctx.user_id, now, request.id])
        enrolled = False
        try:
            if approved and not await self.enrollment_service.get_enrollment(
                request.user_id, request.course_id
            ):
                enrollment = Enrollment(
                    user_id=request.user_id,
                    course_id=request.course_id,
                    source=EnrollmentSource.APPROVED.value,
                    enrolled_at=now,
                )
                for statement, params in self.enrollment_service.insert_statements(
                    enrollment
                ):
                    batch.add(statement, params)
                enrolled = True
            await self.session.aexecute(batch)
        except CASSANDRA_ERRORS as e:
            logger.error(
                "access_request_resolve_failed",
                request_id=str(request_id),
                decision=decision.value,
                error=str(e),
            )
            await self._recover_guard(request)
            raise StorageFailureError() from e

        request.status = status.value
        request.admin_response = response
        request.resolved_by = ctx.user_id
        request.updated_at = now
        logger.info(
            "access_request_resolved",
            request_id=str(request_id),
            status=status.value,
            enrollment_created=enrolled,
        )

        await self._notify_requester(request)
        return request

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _all_requests(self) -> list[AccessRequest]:
        rows = await self.session.aexecute(self._list_requests)
        requests = [AccessRequest.from_row(row) for row in rows]
        requests.sort(key=lambda r: r.created_at, reverse=True)
        return requests

    async def _pending_row(self, user_id: UUID, course_id: UUID):
        """The guard row of the caller's pending request, if any.

        A guard whose request is already resolved is stale (a resolve batch
        that landed after reporting a failure) and is removed here.
        """
        rows = await self.session.aexecute(self._get_pending, [user_id, course_id])
        guard = rows.one()
        if not guard:
            return None

        # A missing request is a create still in flight
        request = await self.get_request(guard.request_id)
        if request is None or request.is_pending:
            return guard

        logger.warning(
            "access_request_stale_guard_dropped",
            request_id=str(guard.request_id),
            status=request.status,
        )
        with storage_guard("drop_stale_access_guard", request_id=str(guard.request_id)):
            await self.session.aexecute(
                self._release_pending, [user_id, course_id, guard.request_id]
            )
        return None

    async def _recover_guard(self, request: AccessRequest) -> None:
        """Put the guard back after a failed resolve batch if still pending."""
        try:
            current = await self.get_request(request.id)
        except CASSANDRA_ERRORS as e:
            logger.warning(
                "access_request_reread_failed",
                request_id=str(request.id),
                error=str(e),
            )
            current = request
        if current and not current.is_pending:
            logger.warning(
                "access_request_resolve_applied",
                request_id=str(request.id),
                status=current.status,
            )
            return
        await self._restore_guard(request)

    async def _restore_guard(self, request: AccessRequest) -> None:
        try:
            await self.session.aexecute(
                self._restore_pending,
                [request.user_id, request.course_id, request.id, request.created_at],
            )
        except CASSANDRA_ERRORS as e:
            # Request stays pending without a guard; a new request could slip in
            logger.error(
                "access_request_guard_restore_failed",
                request_id=str(request.id),
                error=str(e),
            )

    async def _notify_requester(self, request: AccessRequest) -> None:
        """Tell the student about the decision. Never fails the resolve."""
        if not self.notification_service:
            return

        try:
            course = await self.course_service.get_course(request.course_id)
        except CASSANDRA_ERRORS:
            course = None
        title = course.title if course else "your course"
        if request.status == AccessRequestStatus.APPROVED.value:
            headline = "Access request approved"
            body = f"You now have access to {title}."
            severity = "success"
        else:
            headline = "Access request rejected"
            body = f"Your request for {title} was not approved."
            severity = "warning"
        if request.admin_response:
            body = f"{body} {request.admin_response}"

        try:
            await self.notification_service.notify_user(
                user_id=request.user_id,
                title=headline,
                message=body,
                severity=severity,
                category="course",
                related_entity_id=request.course_id,
            )
        except LearnHubError as e:
            logger.warning(
                "access_request_notification_failed",
                request_id=str(request.id),
                error=e.message,
            )

    @staticmethod
    def _params(request: AccessRequest) -> list:
        return [
            request.id,
            request.user_id,
            request.course_id,
            request.status,
            request.message,
            request.admin_response,
            request.resolved_by,
            request.created_at,
            request.updated_at,
        ]
