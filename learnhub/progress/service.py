"""Enrollment and progress service layer.

Business logic for:
- Enrollments (one per user and course, enforced with LWT)
- Lesson completion (idempotent upsert)
- Course progress aggregation and course completion
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.auth.session import SessionContext
from learnhub.core.database.errors import CASSANDRA_ERRORS, storage_guard
from learnhub.core.dates import utc_now
from learnhub.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from learnhub.courses.service import CourseNotFoundError, LessonNotFoundError

from .models import (
    CourseDetail,
    EnrolledCourse,
    Enrollment,
    EnrollmentSource,
    LessonProgress,
    Progress,
    calculate_progress,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from cassandra.query import PreparedStatement

    from learnhub.access.service import AccessService
    from learnhub.courses.service import CourseService, LessonService, ModuleService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class NotEnrolledError(NotFoundError):
    def __init__(self, message: str = "User is not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class AlreadyEnrolledError(ConflictError):
    def __init__(self, message: str = "User is already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class AccessRequestRequiredError(PermissionDeniedError):
    """Private course without an enrollment."""

    def __init__(self, message: str = "This course requires an access request"):
        super().__init__(message, "requires_access_request")


class CourseAccessDeniedError(PermissionDeniedError):
    def __init__(self, reason: str):
        super().__init__("You do not have access to this course", reason)


class CourseIncompleteError(ConflictError):
    def __init__(self, completed: int, total: int):
        super().__init__(
            f"Course has {total - completed} lesson(s) left to complete",
            "course_incomplete",
        )


# ==============================================================================
# Enrollment Service
# ==============================================================================


class EnrollmentService:
    """Storage of enrollments in both lookup directions."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace
        self._claim_enrollment = self.session.prepare(f"""
            INSERT INTO {ks}.enrollments
            (course_id, user_id, source, enrolled_at, completed_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        # Plain writes, for use inside a batch together with other tables
        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {ks}.enrollments
            (course_id, user_id, source, enrolled_at, completed_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._insert_enrollment_by_user = self.session.prepare(f"""
            INSERT INTO {ks}.enrollments_by_user
            (user_id, course_id, source, enrolled_at, completed_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {ks}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)
        self._list_by_user = self.session.prepare(
            f"SELECT * FROM {ks}.enrollments_by_user WHERE user_id = ?"
        )
        self._list_by_course = self.session.prepare(
            f"SELECT * FROM {ks}.enrollments WHERE course_id = ?"
        )
        self._list_all = self.session.prepare(f"SELECT * FROM {ks}.enrollments")
        self._complete = self.session.prepare(f"""
            UPDATE {ks}.enrollments SET completed_at = ?
            WHERE course_id = ? AND user_id = ?
            IF completed_at = null
        """)
        self._complete_by_user = self.session.prepare(f"""
            UPDATE {ks}.enrollments_by_user SET completed_at = ?
            WHERE user_id = ? AND course_id = ?
        """)

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        rows = await self.session.aexecute(self._get_enrollment, [course_id, user_id])
        row = rows.one()
        return Enrollment.from_row(row) if row else None

    async def list_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        """Enrollments of a user, most recent first."""
        rows = await self.session.aexecute(self._list_by_user, [user_id])
        enrollments = [Enrollment.from_row(row) for row in rows]
        enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)
        return enrollments

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return [Enrollment.from_row(row) for row in rows]

    async def list_all_enrollments(self) -> list[Enrollment]:
        """Every enrollment on the platform (admin metrics)."""
        rows = await self.session.aexecute(self._list_all)
        return [Enrollment.from_row(row) for row in rows]

    async def create_enrollment(
        self,
        user_id: UUID,
        course_id: UUID,
        source: EnrollmentSource = EnrollmentSource.SELF,
    ) -> tuple[Enrollment, bool]:
        """Enroll a user unless already enrolled.

        Returns:
            (enrollment, created). ``created`` is False when another call won
            the insert; the stored enrollment is returned in that case.
        """
        enrollment = Enrollment(user_id=user_id, course_id=course_id, source=source.value)

        with storage_guard("create_enrollment", course_id=str(course_id)):
            result = await self.session.aexecute(
                self._claim_enrollment, self._params(enrollment)
            )
            if not result.was_applied:
                existing = await self.get_enrollment(user_id, course_id)
                if existing is None:
                    return enrollment, False
                # A prior call may have failed between the two inserts
                await self.session.aexecute(
                    self._insert_enrollment_by_user, self._by_user_params(existing)
                )
                return existing, False

            await self.session.aexecute(
                self._insert_enrollment_by_user, self._by_user_params(enrollment)
            )

        logger.info(
            "enrollment_created",
            user_id=str(user_id),
            course_id=str(course_id),
            source=enrollment.source,
        )
        return enrollment, True

    def insert_statements(
        self, enrollment: Enrollment
    ) -> list[tuple["PreparedStatement", list]]:
        """Unconditional inserts for both tables, to be added to a batch."""
        return [
            (self._insert_enrollment, self._params(enrollment)),
            (self._insert_enrollment_by_user, self._by_user_params(enrollment)),
        ]

    async def complete(self, enrollment: Enrollment) -> Enrollment:
        """Stamp completed_at once; a second call keeps the first timestamp."""
        completed_at = utc_now()
        with storage_guard("complete_enrollment", course_id=str(enrollment.course_id)):
            result = await self.session.aexecute(
                self._complete, [completed_at, enrollment.course_id, enrollment.user_id]
            )
            if not result.was_applied:
                stored = await self.get_enrollment(enrollment.user_id, enrollment.course_id)
                if stored is None or stored.completed_at is None:
                    return stored or enrollment
                # Re-stamp the mirror in case an earlier call stopped after the LWT
                await self.session.aexecute(
                    self._complete_by_user,
                    [stored.completed_at, stored.user_id, stored.course_id],
                )
                return stored
            await self.session.aexecute(
                self._complete_by_user,
                [completed_at, enrollment.user_id, enrollment.course_id],
            )

        enrollment.completed_at = completed_at
        logger.info(
            "course_completed",
            user_id=str(enrollment.user_id),
            course_id=str(enrollment.course_id),
        )
        return enrollment

    @staticmethod
    def _params(enrollment: Enrollment) -> list:
        return [
            enrollment.course_id,
            enrollment.user_id,
            enrollment.source,
            enrollment.enrolled_at,
            enrollment.completed_at,
        ]

    @staticmethod
    def _by_user_params(enrollment: Enrollment) -> list:
        return [
            enrollment.user_id,
            enrollment.course_id,
            enrollment.source,
            enrollment.enrolled_at,
            enrollment.completed_at,
        ]


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for student progress tracking."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: "CourseService",
        module_service: "ModuleService",
        lesson_service: "LessonService",
        enrollment_service: EnrollmentService,
        access_service: "AccessService",
        require_full_completion: bool = False,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.module_service = module_service
        self.lesson_service = lesson_service
        self.enrollment_service = enrollment_service
        self.access_service = access_service
        self.require_full_completion = require_full_completion
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace
        self._insert_progress = self.session.prepare(f"""
            INSERT INTO {ks}.lesson_progress
            (user_id, lesson_id, course_id, module_id, completed_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._get_progress = self.session.prepare(f"""
            SELECT * FROM {ks}.lesson_progress
            WHERE user_id = ? AND lesson_id = ?
        """)
        self._list_user_progress = self.session.prepare(
            f"SELECT * FROM {ks}.lesson_progress WHERE user_id = ?"
        )
        self._list_all_progress = self.session.prepare(
            f"SELECT * FROM {ks}.lesson_progress"
        )

    # ==========================================================================
    # Lesson Completion
    # ==========================================================================

    async def mark_lesson_complete(
        self, ctx: SessionContext, lesson_id: UUID
    ) -> tuple[LessonProgress, bool]:
        """Mark a lesson complete for the caller.

        Idempotent: completing an already completed lesson returns the stored
        record with ``created=False``.

        Raises:
            LessonNotFoundError: Unknown lesson
            CourseAccessDeniedError: Caller may not access the lesson's course
        """
        lesson = await self.lesson_service.get_lesson(lesson_id)
        if not lesson:
            raise LessonNotFoundError

        decision = await self.access_service.can_access(ctx, lesson.course_id)
        if not decision.allowed:
            raise CourseAccessDeniedError(decision.reason.value)

        progress = LessonProgress(
            user_id=ctx.user_id,
            lesson_id=lesson.id,
            course_id=lesson.course_id,
            module_id=lesson.module_id,
        )
        with storage_guard("mark_lesson_complete", lesson_id=str(lesson_id)):
            result = await self.session.aexecute(
                self._insert_progress,
                [
                    progress.user_id,
                    progress.lesson_id,
                    progress.course_id,
                    progress.module_id,
                    progress.completed_at,
                ],
            )
            if not result.was_applied:
                rows = await self.session.aexecute(
                    self._get_progress, [ctx.user_id, lesson_id]
                )
                row = rows.one()
                return (LessonProgress.from_row(row) if row else progress), False

        logger.info(
            "lesson_completed",
            lesson_id=str(lesson_id),
            course_id=str(lesson.course_id),
        )
        return progress, True

    async def list_user_progress(self, user_id: UUID) -> list[LessonProgress]:
        rows = await self.session.aexecute(self._list_user_progress, [user_id])
        return [LessonProgress.from_row(row) for row in rows]

    async def list_all_progress(self) -> list[LessonProgress]:
        """Every completion record (admin metrics)."""
        rows = await self.session.aexecute(self._list_all_progress)
        return [LessonProgress.from_row(row) for row in rows]

    async def completed_lesson_ids(self, user_id: UUID) -> set[UUID]:
        return {p.lesson_id for p in await self.list_user_progress(user_id)}

    # ==========================================================================
    # Aggregation
    # ==========================================================================

    async def course_lesson_ids(self, course_id: UUID) -> set[UUID]:
        """Ids of every lesson under every module of the course."""
        outline = await self.module_service.get_course_outline(course_id)
        return {lesson.id for _, lessons in outline for lesson in lessons}

    async def course_progress(self, ctx: SessionContext, course_id: UUID) -> Progress:
        """Progress of the caller in a course.

        Read failures degrade to an empty progress instead of failing the view.

        Raises:
            CourseNotFoundError: Unknown course, or unpublished for a student
        """
        course = await self.course_service.require_course(course_id)
        if not course.is_published and not ctx.is_admin:
            raise CourseNotFoundError

        try:
            return calculate_progress(
                await self.course_lesson_ids(course_id),
                await self.completed_lesson_ids(ctx.user_id),
            )
        except CASSANDRA_ERRORS as e:
            logger.warning(
                "course_progress_unavailable",
                course_id=str(course_id),
                error=str(e),
            )
            return Progress.empty()

    async def get_enrolled_courses(self, ctx: SessionContext) -> list[EnrolledCourse]:
        """The caller's enrollments with course and progress, newest first."""
        try:
            enrollments = await self.enrollment_service.list_user_enrollments(
                ctx.user_id
            )
            courses = await self.course_service.get_courses(
                [e.course_id for e in enrollments]
            )
            completed = await self.completed_lesson_ids(ctx.user_id)
            result = []
            for enrollment in enrollments:
                course = courses.get(enrollment.course_id)
                if not course:
                    continue
                lesson_ids = await self.course_lesson_ids(course.id)
                result.append(
                    EnrolledCourse(
                        enrollment=enrollment,
                        course=course,
                        progress=calculate_progress(lesson_ids, completed),
                    )
                )
            return result
        except CASSANDRA_ERRORS as e:
            logger.warning("enrolled_courses_unavailable", error=str(e))
            return []

    async def get_course_detail(self, ctx: SessionContext, course_id: UUID) -> CourseDetail:
        """Course outline for the caller with per-lesson completion.

        Runs the enrollment gate, so opening a free course enrolls the caller.

        Raises:
            CourseNotFoundError: Unknown course, or unpublished for a student
        """
        course = await self.course_service.require_course(course_id)
        if not course.is_published and not ctx.is_admin:
            raise CourseNotFoundError

        decision = await self.access_service.can_access(ctx, course_id)
        outline = await self.module_service.get_course_outline(course_id)
        detail = CourseDetail(course=course, access=decision, outline=outline)
        if not decision.allowed:
            return detail

        lesson_ids = {lesson.id for _, lessons in outline for lesson in lessons}
        detail.completed_lesson_ids = await self.completed_lesson_ids(ctx.user_id)
        detail.progress = calculate_progress(lesson_ids, detail.completed_lesson_ids)
        detail.enrollment = await self.enrollment_service.get_enrollment(
            ctx.user_id, course_id
        )
        return detail

    # ==========================================================================
    # Enrollment and Completion
    # ==========================================================================

    async def enroll(self, ctx: SessionContext, course_id: UUID) -> Enrollment:
        """Enroll the caller in a free course.

        Raises:
            CourseNotFoundError: Unknown course, or unpublished for a student
            AccessRequestRequiredError: Private course
            AlreadyEnrolledError: Caller is already enrolled
        """
        course = await self.course_service.require_course(course_id)
        if not course.is_published and not ctx.is_admin:
            raise CourseNotFoundError
        if not course.is_free:
            raise AccessRequestRequiredError

        enrollment, created = await self.enrollment_service.create_enrollment(
            ctx.user_id, course_id, EnrollmentSource.SELF
        )
        if not created:
            raise AlreadyEnrolledError
        return enrollment

    async def complete_course(self, ctx: SessionContext, course_id: UUID) -> Enrollment:
        """Stamp completed_at on the caller's enrollment.

        Raises:
            CourseNotFoundError: Unknown course
            NotEnrolledError: Caller is not enrolled
            CourseIncompleteError: Lessons remain and full completion is required
        """
        await self.course_service.require_course(course_id)
        enrollment = await self.enrollment_service.get_enrollment(ctx.user_id, course_id)
        if not enrollment:
            raise NotEnrolledError

        if self.require_full_completion and not enrollment.is_completed:
            progress = calculate_progress(
                await self.course_lesson_ids(course_id),
                await self.completed_lesson_ids(ctx.user_id),
            )
            if progress.completed < progress.total:
                raise CourseIncompleteError(progress.completed, progress.total)

        return await self.enrollment_service.complete(enrollment)
